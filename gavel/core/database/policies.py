"""
Gavel - Database Guild Policy Module
====================================

Guild policy persistence.
"""

import json
import time
from typing import Any, Optional, TYPE_CHECKING

from gavel.core.logger import logger
from gavel.core.models import AutoModSettings, GuildPolicy, policy_summary

if TYPE_CHECKING:
    import sqlite3
    from gavel.core.database.manager import DatabaseManager


def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Safely parse JSON, returning default on error."""
    if not value:
        return default if default is not None else []
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50]}")
        return default if default is not None else []


def _policy_from_row(row: "sqlite3.Row") -> GuildPolicy:
    return GuildPolicy(
        guild_id=row["guild_id"],
        guild_name=row["guild_name"],
        automod_enabled=bool(row["automod_enabled"]),
        automod=AutoModSettings(
            anti_spam=bool(row["anti_spam"]),
            anti_invite=bool(row["anti_invite"]),
            anti_link=bool(row["anti_link"]),
            anti_caps=bool(row["anti_caps"]),
            max_mentions=row["max_mentions"],
            max_emojis=row["max_emojis"],
        ),
        leveling_enabled=bool(row["leveling_enabled"]),
        moderator_roles=[int(r) for r in _safe_json_loads(row["moderator_roles"])],
        admin_roles=[int(r) for r in _safe_json_loads(row["admin_roles"])],
        ignored_channels={int(c) for c in _safe_json_loads(row["ignored_channels"])},
        mod_log_channel_id=row["mod_log_channel_id"],
    )


class PoliciesMixin:
    """Mixin for guild policy operations."""

    def get_guild_policy(self: "DatabaseManager", guild_id: int) -> Optional[GuildPolicy]:
        """
        Get the stored policy for a guild.

        Returns:
            GuildPolicy or None if the guild has none yet.
        """
        row = self.fetchone(
            "SELECT * FROM guild_policies WHERE guild_id = ?",
            (guild_id,)
        )
        return _policy_from_row(row) if row else None

    def save_guild_policy(self: "DatabaseManager", policy: GuildPolicy) -> GuildPolicy:
        """
        Insert or replace a guild policy.

        The primary key on guild_id keeps at most one policy per guild.
        """
        now = int(time.time() * 1000)
        rules = policy.automod
        self.execute(
            """INSERT INTO guild_policies
               (guild_id, guild_name, automod_enabled, anti_spam, anti_invite,
                anti_link, anti_caps, max_mentions, max_emojis, leveling_enabled,
                moderator_roles, admin_roles, ignored_channels, mod_log_channel_id,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(guild_id) DO UPDATE SET
                guild_name = excluded.guild_name,
                automod_enabled = excluded.automod_enabled,
                anti_spam = excluded.anti_spam,
                anti_invite = excluded.anti_invite,
                anti_link = excluded.anti_link,
                anti_caps = excluded.anti_caps,
                max_mentions = excluded.max_mentions,
                max_emojis = excluded.max_emojis,
                leveling_enabled = excluded.leveling_enabled,
                moderator_roles = excluded.moderator_roles,
                admin_roles = excluded.admin_roles,
                ignored_channels = excluded.ignored_channels,
                mod_log_channel_id = excluded.mod_log_channel_id,
                updated_at = excluded.updated_at""",
            (
                policy.guild_id,
                policy.guild_name,
                int(policy.automod_enabled),
                int(rules.anti_spam),
                int(rules.anti_invite),
                int(rules.anti_link),
                int(rules.anti_caps),
                rules.max_mentions,
                rules.max_emojis,
                int(policy.leveling_enabled),
                json.dumps(list(policy.moderator_roles)),
                json.dumps(list(policy.admin_roles)),
                json.dumps(sorted(policy.ignored_channels)),
                policy.mod_log_channel_id,
                now,
                now,
            )
        )
        return policy

    def get_or_create_guild_policy(
        self: "DatabaseManager",
        guild_id: int,
        guild_name: str = "",
    ) -> GuildPolicy:
        """
        Get a guild's policy, creating one with defaults if missing.

        Args:
            guild_id: Guild ID.
            guild_name: Name stored when the policy is created.

        Returns:
            The existing or newly created GuildPolicy.
        """
        existing = self.get_guild_policy(guild_id)
        if existing:
            return existing

        policy = self.save_guild_policy(GuildPolicy(guild_id=guild_id, guild_name=guild_name))
        logger.tree("Guild Policy Created", policy_summary(policy), emoji="🛡️")
        return policy
