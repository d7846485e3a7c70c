"""
Gavel - Database User Record Module
===================================

Per (user, guild) counters and leveling state.
"""

from typing import List, Optional, TYPE_CHECKING

from gavel.core.models import USER_COUNTERS, UserRecord

if TYPE_CHECKING:
    from gavel.core.database.manager import DatabaseManager


class UsersMixin:
    """Mixin for user record operations."""

    def get_user_record(self: "DatabaseManager", user_id: int, guild_id: int) -> Optional[UserRecord]:
        row = self.fetchone(
            "SELECT * FROM user_records WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id)
        )
        return UserRecord.from_row(row) if row else None

    def increment_user_counter(
        self: "DatabaseManager",
        user_id: int,
        guild_id: int,
        counter: str,
    ) -> UserRecord:
        """
        Increment one moderation counter, creating the record if absent.

        DESIGN:
            Two outcomes in one statement: an existing record is
            incremented, a missing one is inserted with defaults and the
            increment already applied.

        Args:
            user_id: Discord user ID.
            guild_id: Guild ID.
            counter: One of warnings, kicks, bans, mutes.

        Returns:
            The updated UserRecord.

        Raises:
            ValueError: If counter is not a moderation counter.
        """
        if counter not in USER_COUNTERS:
            raise ValueError(f"Unknown user counter: {counter}")

        self.execute(
            f"""INSERT INTO user_records (user_id, guild_id, {counter})
                VALUES (?, ?, 1)
                ON CONFLICT(user_id, guild_id) DO UPDATE SET {counter} = {counter} + 1""",
            (user_id, guild_id)
        )
        return self.get_user_record(user_id, guild_id)

    def save_experience(
        self: "DatabaseManager",
        user_id: int,
        guild_id: int,
        experience: int,
        level: int,
        last_message_at: int,
    ) -> UserRecord:
        """
        Store an XP award and count the message that earned it.

        Returns:
            The updated UserRecord.
        """
        self.execute(
            """INSERT INTO user_records (user_id, guild_id, messages, experience, level, last_message_at)
               VALUES (?, ?, 1, ?, ?, ?)
               ON CONFLICT(user_id, guild_id) DO UPDATE SET
                messages = messages + 1,
                experience = excluded.experience,
                level = excluded.level,
                last_message_at = excluded.last_message_at""",
            (user_id, guild_id, experience, level, last_message_at)
        )
        return self.get_user_record(user_id, guild_id)

    def get_leaderboard(self: "DatabaseManager", guild_id: int, limit: int = 10) -> List[UserRecord]:
        """Get the top users of a guild by level, then experience."""
        rows = self.fetchall(
            """SELECT * FROM user_records WHERE guild_id = ?
               ORDER BY level DESC, experience DESC LIMIT ?""",
            (guild_id, limit)
        )
        return [UserRecord.from_row(row) for row in rows]

    def get_rank(self: "DatabaseManager", user_id: int, guild_id: int) -> Optional[int]:
        """
        Get a user's 1-based leaderboard position.

        Returns:
            Rank, or None if the user has no record.
        """
        record = self.get_user_record(user_id, guild_id)
        if record is None:
            return None
        row = self.fetchone(
            """SELECT COUNT(*) AS ahead FROM user_records
               WHERE guild_id = ? AND (level > ? OR (level = ? AND experience > ?))""",
            (guild_id, record.level, record.level, record.experience)
        )
        return row["ahead"] + 1

    def get_top_warned(self: "DatabaseManager", guild_id: int, limit: int = 5) -> List[UserRecord]:
        rows = self.fetchall(
            """SELECT * FROM user_records WHERE guild_id = ? AND warnings > 0
               ORDER BY warnings DESC LIMIT ?""",
            (guild_id, limit)
        )
        return [UserRecord.from_row(row) for row in rows]
