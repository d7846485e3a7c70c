"""
Gavel - Database Case Operations Module
=======================================

Moderation case storage with per-guild sequential ids.
"""

import time
from typing import List, Optional, Sequence, TYPE_CHECKING

from gavel.core.logger import logger
from gavel.core.models import ActionKind, CaseDraft, ModerationCase

if TYPE_CHECKING:
    from gavel.core.database.manager import DatabaseManager


class CasesMixin:
    """Mixin for moderation case operations."""

    def get_max_case_id(self: "DatabaseManager", guild_id: int) -> int:
        """
        Get the highest case id issued in a guild.

        Returns:
            Highest case id, or 0 for a guild with no cases.
        """
        row = self.fetchone(
            "SELECT COALESCE(MAX(case_id), 0) AS max_id FROM mod_cases WHERE guild_id = ?",
            (guild_id,)
        )
        return row["max_id"] if row else 0

    def insert_case(
        self: "DatabaseManager",
        draft: CaseDraft,
        reverses: Sequence[ActionKind] = (),
    ) -> ModerationCase:
        """
        Allocate the next case id and store the case atomically.

        DESIGN:
            Runs as one BEGIN IMMEDIATE transaction: reversed cases are
            deactivated, the max id is read and the new row inserted.
            A failure rolls everything back, so the id is never reserved
            and the next attempt re-reads the max.

        Args:
            draft: Case content without an id.
            reverses: Action kinds whose active cases for the same target
                are marked inactive (e.g. unban reverses ban).

        Returns:
            The stored ModerationCase.
        """
        created_at = draft.created_at if draft.created_at is not None else int(time.time() * 1000)
        reversed_count = 0

        with self.transaction() as tx:
            if reverses:
                placeholders = ",".join("?" for _ in reverses)
                tx.execute(
                    f"""UPDATE mod_cases SET active = 0
                        WHERE guild_id = ? AND target_id = ? AND active = 1
                        AND action IN ({placeholders})""",
                    (draft.guild_id, draft.target_id, *[kind.value for kind in reverses])
                )
                reversed_count = tx.rowcount

            tx.execute(
                "SELECT COALESCE(MAX(case_id), 0) AS max_id FROM mod_cases WHERE guild_id = ?",
                (draft.guild_id,)
            )
            case_id = tx.fetchone()["max_id"] + 1

            tx.execute(
                """INSERT INTO mod_cases
                   (guild_id, case_id, action, target_id, target_tag, actor_id,
                    actor_tag, reason, duration_ms, active, expires_at, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
                (
                    draft.guild_id, case_id, draft.kind.value, draft.target_id,
                    draft.target_tag, draft.actor_id, draft.actor_tag, draft.reason,
                    draft.duration_ms, draft.expires_at, created_at,
                )
            )

        case = ModerationCase(
            guild_id=draft.guild_id,
            case_id=case_id,
            kind=draft.kind,
            target_id=draft.target_id,
            target_tag=draft.target_tag,
            actor_id=draft.actor_id,
            actor_tag=draft.actor_tag,
            reason=draft.reason,
            duration_ms=draft.duration_ms,
            active=True,
            expires_at=draft.expires_at,
            created_at=created_at,
        )

        details = [
            ("Guild", str(draft.guild_id)),
            ("Case ID", f"#{case_id}"),
            ("Action", draft.kind.value),
            ("Target", f"{draft.target_tag} ({draft.target_id})"),
            ("Moderator", f"{draft.actor_tag} ({draft.actor_id})"),
        ]
        if reverses:
            details.append(("Reversed", f"{reversed_count} active {'/'.join(k.value for k in reverses)}"))
        logger.tree("Case Created", details, emoji="📋")

        return case

    def get_case(self: "DatabaseManager", guild_id: int, case_id: int) -> Optional[ModerationCase]:
        row = self.fetchone(
            "SELECT * FROM mod_cases WHERE guild_id = ? AND case_id = ?",
            (guild_id, case_id)
        )
        return ModerationCase.from_row(row) if row else None

    def get_user_cases(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        limit: int = 10,
    ) -> List[ModerationCase]:
        """Get a user's cases in a guild, newest first."""
        rows = self.fetchall(
            """SELECT * FROM mod_cases WHERE guild_id = ? AND target_id = ?
               ORDER BY case_id DESC LIMIT ?""",
            (guild_id, user_id, limit)
        )
        return [ModerationCase.from_row(row) for row in rows]

    def get_recent_cases(self: "DatabaseManager", guild_id: int, limit: int = 10) -> List[ModerationCase]:
        """Get a guild's most recent cases, newest first."""
        rows = self.fetchall(
            "SELECT * FROM mod_cases WHERE guild_id = ? ORDER BY case_id DESC LIMIT ?",
            (guild_id, limit)
        )
        return [ModerationCase.from_row(row) for row in rows]

    def get_active_cases(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        kind: ActionKind,
    ) -> List[ModerationCase]:
        rows = self.fetchall(
            """SELECT * FROM mod_cases
               WHERE guild_id = ? AND target_id = ? AND action = ? AND active = 1
               ORDER BY case_id""",
            (guild_id, user_id, kind.value)
        )
        return [ModerationCase.from_row(row) for row in rows]

    # =========================================================================
    # Statistics
    # =========================================================================

    def count_cases(
        self: "DatabaseManager",
        guild_id: int,
        kind: Optional[ActionKind] = None,
        active_only: bool = False,
    ) -> int:
        """
        Count cases in a guild, optionally by kind and active state.
        """
        query = "SELECT COUNT(*) AS count FROM mod_cases WHERE guild_id = ?"
        params: list = [guild_id]
        if kind is not None:
            query += " AND action = ?"
            params.append(kind.value)
        if active_only:
            query += " AND active = 1"
        row = self.fetchone(query, tuple(params))
        return row["count"] if row else 0
