# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Consolidation bridge between the short-term and long-term stores.

Marks short-term records for promotion and, once a long-term record has
been written from them, stamps them as consolidated. Stamping is
idempotent: retrying it re-applies the same state.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from tiered_memory.memory.actor import ActorContext, require_actor
from tiered_memory.memory.protocols import MemoryRecordStore, MemoryTable
from tiered_memory.memory.schemas import ShortTermMemory, utc_now

logger = logging.getLogger(__name__)


class ConsolidationBridge:
    """Tracks which short-term memories await promotion.

    All operations are restricted to the actor's own records; ids that do
    not exist or belong to someone else are skipped.

    Example:
        >>> bridge = ConsolidationBridge(store)
        >>> await bridge.mark_for_consolidation(actor, [memory_id])
        >>> pending = await bridge.pending_memories(actor)
    """

    def __init__(self, record_store: MemoryRecordStore):
        """Initialize the bridge.

        Args:
            record_store: Record store holding the short-term table.
        """
        self.record_store = record_store

    async def _owned(self, actor: ActorContext, memory_id: str) -> Optional[ShortTermMemory]:
        memory = await self.record_store.get(MemoryTable.SHORT_TERM, memory_id)
        if memory is None or not actor.owns(memory):
            return None
        return memory

    async def mark_for_consolidation(
        self, actor: Optional[ActorContext], memory_ids: Iterable[str]
    ) -> int:
        """Flag short-term memories for promotion.

        Args:
            actor: The caller.
            memory_ids: Short-term ids to flag.

        Returns:
            Number of records flagged (including already-flagged ones).

        Raises:
            AuthenticationRequired: If actor is None.
        """
        actor = require_actor(actor, "mark_for_consolidation")
        marked = 0
        for memory_id in memory_ids:
            memory = await self._owned(actor, memory_id)
            if memory is None:
                logger.debug(f"Skipping consolidation mark for unknown memory {memory_id}")
                continue
            if not memory.should_consolidate:
                await self.record_store.patch(
                    MemoryTable.SHORT_TERM, memory_id, {"should_consolidate": True}
                )
            marked += 1
        return marked

    async def stamp_consolidated(
        self,
        actor: ActorContext,
        memory_ids: Iterable[str],
        now: Optional[datetime] = None,
    ) -> int:
        """Record that short-term memories have been promoted.

        Args:
            actor: Owner of the records.
            memory_ids: Short-term ids to stamp.
            now: Stamp time (default: current UTC time).

        Returns:
            Number of records stamped.
        """
        if now is None:
            now = utc_now()
        stamped = 0
        for memory_id in memory_ids:
            memory = await self._owned(actor, memory_id)
            if memory is None:
                logger.debug(f"Skipping consolidation stamp for unknown memory {memory_id}")
                continue
            await self.record_store.patch(
                MemoryTable.SHORT_TERM, memory_id, {"consolidated_at": now}
            )
            stamped += 1
        return stamped

    async def pending_memories(
        self,
        actor: ActorContext,
        session_id: Optional[str] = None,
    ) -> list[ShortTermMemory]:
        """Short-term memories flagged for promotion but not yet promoted.

        Args:
            actor: Owner of the records.
            session_id: Restrict to one session.

        Returns:
            Pending records, oldest first.
        """
        where = {
            "user_id": actor.user_id,
            "enterprise_id": actor.enterprise_id,
            "should_consolidate": True,
            "consolidated_at": None,
        }
        if session_id is not None:
            where["session_id"] = session_id
        return await self.record_store.query(
            MemoryTable.SHORT_TERM, where=where, order_by="created_at"
        )

    async def pending_owners(self) -> list[ActorContext]:
        """Distinct owners that have records awaiting promotion."""
        pending = await self.record_store.query(
            MemoryTable.SHORT_TERM,
            where={"should_consolidate": True, "consolidated_at": None},
        )
        owners: dict[tuple[str, str], ActorContext] = {}
        for memory in pending:
            key = (memory.user_id, memory.enterprise_id)
            if key not in owners:
                owners[key] = ActorContext(
                    user_id=memory.user_id, enterprise_id=memory.enterprise_id
                )
        return list(owners.values())
