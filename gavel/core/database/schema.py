"""
Database Schema Module
======================

Table definitions and indexes.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gavel.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        Indexes added for frequently queried columns.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Guild Policies
        # DESIGN: One row per guild, role and channel lists stored as JSON
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_policies (
                guild_id INTEGER PRIMARY KEY,
                guild_name TEXT NOT NULL DEFAULT '',
                automod_enabled INTEGER NOT NULL DEFAULT 0,
                anti_spam INTEGER NOT NULL DEFAULT 1,
                anti_invite INTEGER NOT NULL DEFAULT 1,
                anti_link INTEGER NOT NULL DEFAULT 0,
                anti_caps INTEGER NOT NULL DEFAULT 0,
                max_mentions INTEGER DEFAULT 5,
                max_emojis INTEGER DEFAULT 10,
                leveling_enabled INTEGER NOT NULL DEFAULT 0,
                moderator_roles TEXT NOT NULL DEFAULT '[]',
                admin_roles TEXT NOT NULL DEFAULT '[]',
                ignored_channels TEXT NOT NULL DEFAULT '[]',
                mod_log_channel_id INTEGER,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            )
        """)

        # -----------------------------------------------------------------
        # Moderation Cases
        # DESIGN: case_id is sequential per guild, rows are never deleted
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS mod_cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                case_id INTEGER NOT NULL,
                action TEXT NOT NULL,
                target_id INTEGER NOT NULL,
                target_tag TEXT NOT NULL,
                actor_id INTEGER NOT NULL,
                actor_tag TEXT NOT NULL,
                reason TEXT NOT NULL,
                duration_ms INTEGER,
                active INTEGER NOT NULL DEFAULT 1,
                expires_at INTEGER,
                created_at INTEGER NOT NULL,
                UNIQUE(guild_id, case_id)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_mod_cases_target ON mod_cases(guild_id, target_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_mod_cases_action ON mod_cases(guild_id, action, active)"
        )

        # -----------------------------------------------------------------
        # User Records
        # DESIGN: Created lazily on first counter or XP update
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_records (
                user_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                warnings INTEGER NOT NULL DEFAULT 0,
                kicks INTEGER NOT NULL DEFAULT 0,
                bans INTEGER NOT NULL DEFAULT 0,
                mutes INTEGER NOT NULL DEFAULT 0,
                messages INTEGER NOT NULL DEFAULT 0,
                experience INTEGER NOT NULL DEFAULT 0,
                level INTEGER NOT NULL DEFAULT 0,
                last_message_at INTEGER,
                PRIMARY KEY (user_id, guild_id)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_user_records_level ON user_records(guild_id, level DESC, experience DESC)"
        )

        conn.commit()
