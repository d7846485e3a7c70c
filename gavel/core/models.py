"""
Gavel - Domain Models
=====================

Records shared by every engine component.

DESIGN:
    Persistent records (GuildPolicy, ModerationCase, UserRecord) are plain
    dataclasses built from sqlite3.Row objects. Member snapshots are
    frozen: they are taken fresh for every decision and never cached.

    All timestamps are epoch milliseconds.
"""

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from gavel.core.constants import (
    DEFAULT_MAX_EMOJIS,
    DEFAULT_MAX_MENTIONS,
    DEFAULT_REASON,
)


# =============================================================================
# Action Kinds
# =============================================================================

class ActionKind(str, Enum):
    """Kind of moderation action recorded in a case."""

    WARN = "warn"
    KICK = "kick"
    BAN = "ban"
    MUTE = "mute"
    UNMUTE = "unmute"
    UNBAN = "unban"
    TIMEOUT = "timeout"

    @property
    def reverses(self) -> Tuple["ActionKind", ...]:
        """Kinds whose active cases this action deactivates."""
        return _REVERSALS.get(self, ())

    @property
    def counter(self) -> Optional[str]:
        """UserRecord counter bumped by this action, if any."""
        return _COUNTERS.get(self)


_REVERSALS: Dict[ActionKind, Tuple[ActionKind, ...]] = {
    ActionKind.UNBAN: (ActionKind.BAN,),
    ActionKind.UNMUTE: (ActionKind.TIMEOUT, ActionKind.MUTE),
}

_COUNTERS: Dict[ActionKind, str] = {
    ActionKind.WARN: "warnings",
    ActionKind.KICK: "kicks",
    ActionKind.BAN: "bans",
    ActionKind.TIMEOUT: "mutes",
    ActionKind.MUTE: "mutes",
}


# =============================================================================
# Guild Policy
# =============================================================================

@dataclass
class AutoModSettings:
    """
    Per-rule auto-moderation toggles.

    A ceiling of None disables the mention or emoji rule.
    """

    anti_spam: bool = True
    anti_invite: bool = True
    anti_link: bool = False
    anti_caps: bool = False
    max_mentions: Optional[int] = DEFAULT_MAX_MENTIONS
    max_emojis: Optional[int] = DEFAULT_MAX_EMOJIS


@dataclass
class GuildPolicy:
    """Per-guild moderation configuration. At most one per guild."""

    guild_id: int
    guild_name: str = ""
    automod_enabled: bool = False
    automod: AutoModSettings = field(default_factory=AutoModSettings)
    leveling_enabled: bool = False
    moderator_roles: List[int] = field(default_factory=list)
    admin_roles: List[int] = field(default_factory=list)
    ignored_channels: Set[int] = field(default_factory=set)
    mod_log_channel_id: Optional[int] = None


# =============================================================================
# Cases
# =============================================================================

@dataclass(frozen=True)
class CaseDraft:
    """A case before it has been given its guild-scoped id."""

    guild_id: int
    kind: ActionKind
    target_id: int
    target_tag: str
    actor_id: int
    actor_tag: str
    reason: str = DEFAULT_REASON
    duration_ms: Optional[int] = None
    expires_at: Optional[int] = None
    created_at: Optional[int] = None


@dataclass(frozen=True)
class ModerationCase:
    """Immutable audit record of one moderation action."""

    guild_id: int
    case_id: int
    kind: ActionKind
    target_id: int
    target_tag: str
    actor_id: int
    actor_tag: str
    reason: str
    duration_ms: Optional[int]
    active: bool
    expires_at: Optional[int]
    created_at: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ModerationCase":
        return cls(
            guild_id=row["guild_id"],
            case_id=row["case_id"],
            kind=ActionKind(row["action"]),
            target_id=row["target_id"],
            target_tag=row["target_tag"],
            actor_id=row["actor_id"],
            actor_tag=row["actor_tag"],
            reason=row["reason"],
            duration_ms=row["duration_ms"],
            active=bool(row["active"]),
            expires_at=row["expires_at"],
            created_at=row["created_at"],
        )


# =============================================================================
# User Records
# =============================================================================

@dataclass
class UserRecord:
    """Per (user, guild) counters and leveling state."""

    user_id: int
    guild_id: int
    warnings: int = 0
    kicks: int = 0
    bans: int = 0
    mutes: int = 0
    messages: int = 0
    experience: int = 0
    level: int = 0
    last_message_at: Optional[int] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "UserRecord":
        return cls(**{key: row[key] for key in row.keys()})


USER_COUNTERS: FrozenSet[str] = frozenset({"warnings", "kicks", "bans", "mutes"})


# =============================================================================
# Member Snapshots
# =============================================================================

@dataclass(frozen=True)
class RoleHierarchyView:
    """
    Read-only snapshot of one member's standing in a guild.

    Attributes:
        user_id: Member identity.
        is_owner: Whether the member owns the guild.
        top_role_position: Position of the member's highest role.
        role_ids: Every role the member holds.
        administrator: Built-in administrator capability.
        moderate_members: Built-in moderate-members capability.
    """

    user_id: int
    is_owner: bool = False
    top_role_position: int = 0
    role_ids: FrozenSet[int] = frozenset()
    administrator: bool = False
    moderate_members: bool = False


@dataclass(frozen=True)
class ActorSnapshot:
    """The moderator invoking an action."""

    member: RoleHierarchyView
    tag: str

    @property
    def user_id(self) -> int:
        return self.member.user_id


@dataclass(frozen=True)
class TargetSnapshot:
    """
    The user an action is aimed at.

    member is None when the user is not in the guild. The bannable,
    kickable and moderatable flags say whether the bot itself is able to
    apply that action on the platform.
    """

    user_id: int
    tag: str
    member: Optional[RoleHierarchyView] = None
    bannable: bool = True
    kickable: bool = True
    moderatable: bool = True


def policy_summary(policy: GuildPolicy) -> List[Tuple[str, Any]]:
    """Tree rows describing a policy, for logs."""
    rules = policy.automod
    enabled_rules = [
        name for name, on in (
            ("spam", rules.anti_spam),
            ("invite", rules.anti_invite),
            ("link", rules.anti_link),
            ("caps", rules.anti_caps),
        ) if on
    ]
    return [
        ("Guild", f"{policy.guild_name or 'Unknown'} ({policy.guild_id})"),
        ("Auto-Mod", "Enabled" if policy.automod_enabled else "Disabled"),
        ("Rules", ", ".join(enabled_rules) or "None"),
        ("Leveling", "Enabled" if policy.leveling_enabled else "Disabled"),
        ("Mod Roles", str(len(policy.moderator_roles) + len(policy.admin_roles))),
    ]


__all__ = [
    "ActionKind",
    "AutoModSettings",
    "GuildPolicy",
    "CaseDraft",
    "ModerationCase",
    "UserRecord",
    "USER_COUNTERS",
    "RoleHierarchyView",
    "ActorSnapshot",
    "TargetSnapshot",
    "policy_summary",
]
