"""
Auto-Mod Data Models
====================

Message snapshots, rule outcomes and the sliding spam window.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, FrozenSet, Optional


@dataclass(frozen=True)
class MessageSnapshot:
    """The parts of an inbound message the pipeline looks at."""
    message_id: int
    guild_id: int
    channel_id: int
    author_id: int
    content: str
    mentioned_user_ids: FrozenSet[int] = frozenset()
    author_is_bot: bool = False
    author_moderatable: bool = False


@dataclass(frozen=True)
class RuleOutcome:
    """Result of one rule: clean, or a violation with its reason."""
    rule: Optional[str] = None
    reason: Optional[str] = None

    @property
    def violated(self) -> bool:
        return self.rule is not None

    @classmethod
    def violation(cls, rule: str, reason: str) -> "RuleOutcome":
        return cls(rule=rule, reason=reason)


CLEAN = RuleOutcome()


@dataclass(frozen=True)
class AutoModResult:
    """
    Verdict for one message.

    Attributes:
        delete: Whether the caller should delete the message.
        reason: Human-readable violation reason.
        rule: Name of the rule that fired.
        punished: Whether a spam timeout was applied.
    """
    delete: bool = False
    reason: Optional[str] = None
    rule: Optional[str] = None
    punished: bool = False

    def notice(self, user_id: int) -> Optional[str]:
        """Short-lived channel notice for the author, or None when clean."""
        if not self.delete:
            return None
        return f"⚠️ <@{user_id}>, your message was deleted: **{self.reason}**"


ALLOW = AutoModResult()


class SpamWindow:
    """
    Recent message timestamps for one (guild, user).

    DESIGN:
        The deque never holds more than threshold + 1 entries: once that
        many fall inside the window the author is already over the limit,
        so older stamps cannot change the verdict. Memory per user is O(1).
    """

    __slots__ = ("_stamps", "timeframe_ms")

    def __init__(self, threshold: int, timeframe_ms: int) -> None:
        self._stamps: Deque[int] = deque(maxlen=threshold + 1)
        self.timeframe_ms = timeframe_ms

    def record(self, now_ms: int) -> int:
        """Append a message time, prune expired stamps, return the count."""
        self._stamps.append(now_ms)
        return self.prune(now_ms)

    def prune(self, now_ms: int) -> int:
        """Drop stamps at least timeframe_ms old. Returns what remains."""
        while self._stamps and now_ms - self._stamps[0] >= self.timeframe_ms:
            self._stamps.popleft()
        return len(self._stamps)

    def __len__(self) -> int:
        return len(self._stamps)


__all__ = [
    "MessageSnapshot",
    "RuleOutcome",
    "CLEAN",
    "AutoModResult",
    "ALLOW",
    "SpamWindow",
]
