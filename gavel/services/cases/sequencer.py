"""
Gavel - Case Sequencer
======================

Hands out gap-free, collision-free case ids per guild.

DESIGN:
    Two layers of serialization: a per-guild lock keeps concurrent
    handlers in this process from interleaving, and the storage insert
    runs as one BEGIN IMMEDIATE transaction (read max, insert). A failed
    insert rolls back, so the id is not consumed and the next attempt
    re-reads the max.
"""

from typing import Optional, Sequence

from gavel.core.database import DatabaseManager, get_db, storage_errors
from gavel.core.models import ActionKind, CaseDraft, ModerationCase
from gavel.utils.async_utils import KeyedLock


class CaseSequencer:
    """Per-guild monotonic case numbering."""

    def __init__(self, db: Optional[DatabaseManager] = None) -> None:
        self.db = db or get_db()
        self._locks = KeyedLock()

    def next_case_id(self, guild_id: int) -> int:
        """
        Peek at the id the next case in a guild would receive.

        Returns:
            Current maximum + 1, or 1 for a guild with no cases.
        """
        with storage_errors("Case Id Lookup", guild=guild_id):
            return self.db.get_max_case_id(guild_id) + 1

    async def record_case(
        self,
        draft: CaseDraft,
        reverses: Sequence[ActionKind] = (),
    ) -> ModerationCase:
        """
        Allocate an id and persist a case as one step.

        Args:
            draft: Case content.
            reverses: Kinds whose active cases for the same target become
                inactive in the same transaction.

        Returns:
            The stored ModerationCase.

        Raises:
            TransientIO: If storage rejects the write.
        """
        async with self._locks.hold(draft.guild_id):
            with storage_errors(
                "Case Persistence",
                guild=draft.guild_id,
                action=draft.kind.value,
                target=draft.target_id,
            ):
                return self.db.insert_case(draft, reverses)


__all__ = ["CaseSequencer"]
