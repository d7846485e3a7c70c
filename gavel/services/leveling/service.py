"""
Gavel - Leveling Engine
=======================

Cooldown-gated XP accrual with a single-step level-up rule.

DESIGN:
    A message earns XP only if the author's previous XP-eligible message
    is at least the cooldown old. The award is uniform in [xp_min, xp_max].
    When experience reaches level * 100 + 100 the level rises by exactly
    one and experience resets to zero, so one message never skips levels.
"""

import random
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from gavel.core.config import get_config
from gavel.core.constants import XP_BASE, XP_PER_LEVEL
from gavel.core.database import DatabaseManager, get_db, storage_errors
from gavel.core.logger import logger
from gavel.core.models import GuildPolicy, UserRecord
from gavel.utils.async_utils import KeyedLock


# =============================================================================
# Level Math
# =============================================================================

def required_experience(level: int) -> int:
    """Experience needed to leave the given level."""
    return level * XP_PER_LEVEL + XP_BASE


def apply_experience(level: int, experience: int, gained: int) -> Tuple[int, int, bool]:
    """
    Add XP and apply the level-up rule.

    Returns:
        (new_level, new_experience, leveled_up)
    """
    total = experience + gained
    if total >= required_experience(level):
        return level + 1, 0, True
    return level, total, False


@dataclass(frozen=True)
class LevelUpEvent:
    """Emitted when a message pushes a member to the next level."""
    user_id: int
    guild_id: int
    level: int

    @property
    def notice(self) -> str:
        return f"🎉 <@{self.user_id}>, you've leveled up to **Level {self.level}**!"


# =============================================================================
# Leveling Engine
# =============================================================================

class LevelingEngine:
    """
    Awards XP for messages and reports level-ups.

    Accrual for one (guild, user) is serialized with a keyed lock so a
    burst of messages cannot read the same cooldown stamp twice.
    """

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        config = get_config()
        self.db = db or get_db()
        self.rng = rng or random.Random()
        self.cooldown_ms = config.xp_cooldown_ms
        self.xp_min = config.xp_min
        self.xp_max = config.xp_max
        self._locks = KeyedLock()

    async def on_message(
        self,
        user_id: int,
        guild_id: int,
        now_ms: Optional[int] = None,
        policy: Optional[GuildPolicy] = None,
    ) -> Optional[LevelUpEvent]:
        """
        Process one levelable message.

        Args:
            user_id: Author ID.
            guild_id: Guild ID.
            now_ms: Message time in epoch milliseconds (defaults to now).
            policy: Guild policy; loaded from storage when omitted.

        Returns:
            LevelUpEvent if the author reached a new level, else None.
        """
        if policy is None:
            with storage_errors("Load Policy", guild=guild_id):
                policy = self.db.get_guild_policy(guild_id)
        if policy is None or not policy.leveling_enabled:
            return None

        if now_ms is None:
            now_ms = int(time.time() * 1000)

        async with self._locks.hold((guild_id, user_id)):
            with storage_errors("XP Update", guild=guild_id, user=user_id):
                record = self.db.get_user_record(user_id, guild_id) or UserRecord(user_id=user_id, guild_id=guild_id)

                if record.last_message_at is not None and now_ms - record.last_message_at < self.cooldown_ms:
                    return None

                gained = self.rng.randint(self.xp_min, self.xp_max)
                level, experience, leveled_up = apply_experience(record.level, record.experience, gained)
                self.db.save_experience(user_id, guild_id, experience, level, now_ms)

        if not leveled_up:
            return None

        logger.tree("Level Up", [
            ("Guild", str(guild_id)),
            ("User", str(user_id)),
            ("Level", f"{record.level} -> {level}"),
        ], emoji="🎉")
        return LevelUpEvent(user_id=user_id, guild_id=guild_id, level=level)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_rank(self, user_id: int, guild_id: int) -> Tuple[Optional[UserRecord], Optional[int]]:
        """Return a member's record and 1-based leaderboard position."""
        with storage_errors("Rank Lookup", guild=guild_id, user=user_id):
            return self.db.get_user_record(user_id, guild_id), self.db.get_rank(user_id, guild_id)

    def leaderboard(self, guild_id: int, limit: int = 10) -> List[UserRecord]:
        with storage_errors("Leaderboard Lookup", guild=guild_id):
            return self.db.get_leaderboard(guild_id, limit)


__all__ = [
    "LevelingEngine",
    "LevelUpEvent",
    "apply_experience",
    "required_experience",
]
