"""
Gavel - Moderation History
==========================

Case lookups and per-guild moderation statistics.

Lookups are staff-only: the actor snapshot is checked against the guild
policy on every call. Statistics are aggregate and carry no actor check;
the caller decides who may see them.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from gavel.core.authorization import is_moderator
from gavel.core.config import get_config
from gavel.core.constants import TOP_WARNED_LIMIT
from gavel.core.database import DatabaseManager, get_db, storage_errors
from gavel.core.errors import ErrorCode, NotFound, Unauthorized
from gavel.core.logger import logger
from gavel.core.models import ActionKind, ActorSnapshot, GuildPolicy, ModerationCase


# =============================================================================
# Response Models
# =============================================================================

class WarnedUser(BaseModel):
    """One entry of the most-warned list."""

    user_id: int
    warnings: int = Field(ge=0)


class GuildStats(BaseModel):
    """Moderation statistics for one guild."""

    guild_id: int
    total_cases: int = 0
    active_bans: int = 0
    total_warnings: int = 0
    top_warned: List[WarnedUser] = Field(default_factory=list)


# =============================================================================
# History Service
# =============================================================================

class ModerationHistory:
    """Read-side queries over stored cases and user records."""

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or get_db()
        self.default_limit = get_config().history_limit

    def _require_moderator(self, actor: ActorSnapshot, policy: Optional[GuildPolicy], lookup: str) -> None:
        if not is_moderator(actor.member, policy):
            logger.tree("HISTORY BLOCKED", [
                ("Lookup", lookup),
                ("Moderator", f"{actor.tag} ({actor.user_id})"),
                ("Reason", "Not a moderator"),
            ], emoji="🚫")
            raise Unauthorized()

    # =========================================================================
    # Lookups
    # =========================================================================

    def lookup_case(
        self,
        actor: ActorSnapshot,
        policy: Optional[GuildPolicy],
        guild_id: int,
        case_id: int,
    ) -> ModerationCase:
        """
        Fetch a single case by its guild-scoped id.

        Raises:
            Unauthorized: If the actor is not a moderator.
            NotFound: If the guild has no case with that id.
        """
        self._require_moderator(actor, policy, "case")
        with storage_errors("Case Lookup", guild=guild_id, case=case_id):
            case = self.db.get_case(guild_id, case_id)
        if case is None:
            raise NotFound(ErrorCode.CASE_NOT_FOUND, f"Case #{case_id} does not exist.")
        return case

    def user_history(
        self,
        actor: ActorSnapshot,
        policy: Optional[GuildPolicy],
        guild_id: int,
        user_id: int,
        limit: Optional[int] = None,
    ) -> List[ModerationCase]:
        """Cases targeting a user, newest first."""
        self._require_moderator(actor, policy, "user")
        with storage_errors("History Lookup", guild=guild_id, user=user_id):
            cases = self.db.get_user_cases(guild_id, user_id, limit or self.default_limit)

        logger.tree("History Viewed", [
            ("Guild", str(guild_id)),
            ("Moderator", f"{actor.tag} ({actor.user_id})"),
            ("Target", str(user_id)),
            ("Cases", str(len(cases))),
        ], emoji="📜")
        return cases

    def recent_cases(
        self,
        actor: ActorSnapshot,
        policy: Optional[GuildPolicy],
        guild_id: int,
        limit: Optional[int] = None,
    ) -> List[ModerationCase]:
        self._require_moderator(actor, policy, "recent")
        with storage_errors("Recent Cases Lookup", guild=guild_id):
            return self.db.get_recent_cases(guild_id, limit or self.default_limit)

    # =========================================================================
    # Statistics
    # =========================================================================

    def guild_stats(self, guild_id: int) -> GuildStats:
        """
        Aggregate moderation numbers for a guild.

        total_warnings counts warn cases, which stays exact even if a
        counter update was lost after its case was written.
        """
        with storage_errors("Guild Stats", guild=guild_id):
            top = self.db.get_top_warned(guild_id, TOP_WARNED_LIMIT)
            return GuildStats(
                guild_id=guild_id,
                total_cases=self.db.count_cases(guild_id),
                active_bans=self.db.count_cases(guild_id, ActionKind.BAN, active_only=True),
                total_warnings=self.db.count_cases(guild_id, ActionKind.WARN),
                top_warned=[WarnedUser(user_id=r.user_id, warnings=r.warnings) for r in top],
            )


__all__ = [
    "ModerationHistory",
    "GuildStats",
    "WarnedUser",
]
