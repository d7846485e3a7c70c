"""
Auto-Mod Spam Window Store
==========================

Owns every SpamWindow for one pipeline instance.
"""

import threading
from typing import Dict, Tuple

from gavel.services.automod.models import SpamWindow


WindowKey = Tuple[int, int]
"""(guild_id, user_id)"""


class SpamWindowStore:
    """
    Keyed sliding windows with serialized mutation.

    record() appends, prunes and counts in one step without awaiting, under
    a store lock, so two messages from the same author can never interleave
    inside a window update.
    """

    def __init__(self, threshold: int, timeframe_ms: int) -> None:
        self.threshold = threshold
        self.timeframe_ms = timeframe_ms
        self._windows: Dict[WindowKey, SpamWindow] = {}
        self._lock = threading.Lock()

    def record(self, guild_id: int, user_id: int, now_ms: int) -> int:
        """
        Record one message and return how many fall inside the window.
        """
        key = (guild_id, user_id)
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = SpamWindow(self.threshold, self.timeframe_ms)
                self._windows[key] = window
            return window.record(now_ms)

    def count(self, guild_id: int, user_id: int, now_ms: int) -> int:
        with self._lock:
            window = self._windows.get((guild_id, user_id))
            return window.prune(now_ms) if window else 0

    def cleanup(self, now_ms: int) -> int:
        """
        Drop windows with no stamps left inside the timeframe.

        Returns:
            Number of windows removed.
        """
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.prune(now_ms) == 0]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def clear_guild(self, guild_id: int) -> None:
        with self._lock:
            for key in [k for k in self._windows if k[0] == guild_id]:
                del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)


__all__ = ["SpamWindowStore", "WindowKey"]
