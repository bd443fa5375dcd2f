# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Short-term (session-scoped) memory store.

Short-term memories expire according to their importance:

    critical   365 days (effectively non-expiring)
    high       7 days
    medium     24 hours
    low        4 hours
    temporary  30 minutes

Writes are idempotent per (user, session, type, content): a repeated write
bumps the access count of the existing record instead of inserting.
Critical and high importance memories are flagged for consolidation into
long-term memory, and the expiry sweep keeps them until that happens.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from tiered_memory.config import MemoryConfig
from tiered_memory.memory.actor import ActorContext, require_actor
from tiered_memory.memory.consolidation.bridge import ConsolidationBridge
from tiered_memory.memory.lifecycle import calculate_expiration, is_expired, should_consolidate
from tiered_memory.memory.observability.metrics import MemoryMetrics
from tiered_memory.memory.protocols import MemoryRecordStore, MemoryTable
from tiered_memory.memory.providers.base import (
    coerce_importance,
    coerce_input,
    coerce_memory_types,
    resolve_limit,
    timed,
)
from tiered_memory.memory.schemas import (
    Importance,
    MemoryType,
    ShortTermMemory,
    ShortTermMemoryCreate,
    utc_now,
)

logger = logging.getLogger(__name__)

TIER = "short_term"


class ShortTermMemoryProvider:
    """Session-scoped memory store.

    Example:
        >>> provider = ShortTermMemoryProvider(InMemoryRecordStore())
        >>> memory_id = await provider.store(actor, {
        ...     "session_id": "s1",
        ...     "memory_type": "user_preference",
        ...     "content": "Prefers dark mode",
        ...     "importance": "medium",
        ...     "confidence": 0.7,
        ...     "source": "conversation",
        ... })
        >>> memories = await provider.get_session_memories(actor, "s1")

    Attributes:
        record_store: Backing record store.
        bridge: Consolidation bridge used for marking.
        config: Limits and thresholds.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        record_store: MemoryRecordStore,
        bridge: Optional[ConsolidationBridge] = None,
        config: Optional[MemoryConfig] = None,
        metrics: Optional[MemoryMetrics] = None,
    ):
        """Initialize the provider.

        Args:
            record_store: Backing record store.
            bridge: Consolidation bridge (created over record_store if not provided).
            config: Configuration (defaults if not provided).
            metrics: Metrics collector, or None to disable metrics.
        """
        self.record_store = record_store
        self.bridge = bridge or ConsolidationBridge(record_store)
        self.config = config or MemoryConfig()
        self.metrics = metrics

    async def store(
        self,
        actor: Optional[ActorContext],
        data: Union[ShortTermMemoryCreate, Mapping[str, Any]],
    ) -> str:
        """Store a short-term memory, or refresh an identical one.

        Args:
            actor: The caller.
            data: Memory input.

        Returns:
            Id of the new or existing record.

        Raises:
            AuthenticationRequired: If actor is None.
            MemoryValidationError: If data is a mapping that fails validation.
        """
        actor = require_actor(actor, "short_term.store")
        data = coerce_input(ShortTermMemoryCreate, data)
        now = utc_now()

        expires_at = data.expires_at or calculate_expiration(data.importance, now)

        existing = await self.record_store.query(
            MemoryTable.SHORT_TERM,
            where={
                "user_id": actor.user_id,
                "enterprise_id": actor.enterprise_id,
                "session_id": data.session_id,
                "memory_type": data.memory_type,
                "content": data.content,
            },
            limit=1,
        )

        if existing:
            memory = existing[0]
            await self.record_store.patch(
                MemoryTable.SHORT_TERM,
                memory.id,
                {
                    "access_count": memory.access_count + 1,
                    "last_accessed_at": now,
                    "importance": data.importance,
                    "confidence": max(memory.confidence, data.confidence),
                },
            )
            logger.debug(f"Refreshed short-term memory {memory.id} (session {data.session_id})")
            if self.metrics:
                self.metrics.record_store(TIER, memory_type=str(data.memory_type), merged=True)
            return memory.id

        memory = ShortTermMemory(
            user_id=actor.user_id,
            enterprise_id=actor.enterprise_id,
            session_id=data.session_id,
            memory_type=data.memory_type,
            content=data.content,
            structured_data=data.structured_data,
            context=data.context,
            importance=data.importance,
            confidence=data.confidence,
            source=data.source,
            source_metadata=data.source_metadata,
            access_count=1,
            last_accessed_at=now,
            created_at=now,
            expires_at=expires_at,
            is_processed=False,
            should_consolidate=should_consolidate(data.importance),
        )
        memory_id = await self.record_store.insert(MemoryTable.SHORT_TERM, memory)

        if self.metrics:
            self.metrics.record_store(TIER, memory_type=str(data.memory_type))
        return memory_id

    async def get_by_id(
        self, actor: Optional[ActorContext], memory_id: str
    ) -> Optional[ShortTermMemory]:
        """Get one of the actor's short-term memories by id."""
        if actor is None:
            return None
        memory = await self.record_store.get(MemoryTable.SHORT_TERM, memory_id)
        if memory is None or not actor.owns(memory):
            return None
        return memory

    def _filter(
        self,
        memories: list[ShortTermMemory],
        memory_types: Optional[list[MemoryType]],
        min_importance: Optional[Importance],
    ) -> list[ShortTermMemory]:
        if memory_types:
            memories = [m for m in memories if m.memory_type in memory_types]
        if min_importance is not None:
            memories = [m for m in memories if m.importance.at_least(min_importance)]
        return memories

    async def get_session_memories(
        self,
        actor: Optional[ActorContext],
        session_id: str,
        memory_types: Optional[Iterable[Union[MemoryType, str]]] = None,
        min_importance: Optional[Union[Importance, str]] = None,
        limit: Optional[int] = None,
    ) -> list[ShortTermMemory]:
        """Get the memories of one session, newest first.

        Args:
            actor: The caller. None yields no results.
            session_id: Session to read.
            memory_types: Restrict to these types.
            min_importance: Keep memories at or above this importance.
            limit: Maximum results (default from config).

        Returns:
            Matching memories.
        """
        if actor is None:
            return []
        types = coerce_memory_types(memory_types)
        threshold = coerce_importance(min_importance)
        limit = resolve_limit(limit, self.config.read_limit)

        memories = await self.record_store.query(
            MemoryTable.SHORT_TERM,
            where={
                "user_id": actor.user_id,
                "enterprise_id": actor.enterprise_id,
                "session_id": session_id,
            },
            order_by="created_at",
            descending=True,
        )
        results = self._filter(memories, types, threshold)[:limit]

        if self.metrics:
            self.metrics.record_search(TIER, result_count=len(results))
        return results

    async def get_recent_memories(
        self,
        actor: Optional[ActorContext],
        memory_types: Optional[Iterable[Union[MemoryType, str]]] = None,
        min_importance: Optional[Union[Importance, str]] = None,
        limit: Optional[int] = None,
    ) -> list[ShortTermMemory]:
        """Get recent memories across all of the actor's sessions.

        Filtering completes before sorting by creation time (newest first)
        and truncating to limit.

        Args:
            actor: The caller. None yields no results.
            memory_types: Restrict to these types.
            min_importance: Keep memories at or above this importance.
            limit: Maximum results (default from config).

        Returns:
            Matching memories, newest first.
        """
        if actor is None:
            return []
        types = coerce_memory_types(memory_types)
        threshold = coerce_importance(min_importance)
        limit = resolve_limit(limit, self.config.read_limit)

        owner = {"user_id": actor.user_id, "enterprise_id": actor.enterprise_id}
        memories: list[ShortTermMemory] = []
        if types:
            for memory_type in types:
                memories.extend(
                    await self.record_store.query(
                        MemoryTable.SHORT_TERM,
                        where={**owner, "memory_type": memory_type},
                    )
                )
        else:
            memories = await self.record_store.query(MemoryTable.SHORT_TERM, where=owner)

        memories = self._filter(memories, None, threshold)
        memories.sort(key=lambda m: m.created_at, reverse=True)
        results = memories[:limit]

        if self.metrics:
            self.metrics.record_search(TIER, result_count=len(results))
        return results

    async def search_memories(
        self,
        actor: Optional[ActorContext],
        query: str,
        session_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ShortTermMemory]:
        """Case-insensitive substring search over memory content.

        Args:
            actor: The caller. None yields no results.
            query: Text to look for.
            session_id: Restrict to one session.
            limit: Maximum results (default from config).

        Returns:
            Matching memories, newest first.
        """
        if actor is None:
            return []
        limit = resolve_limit(limit, self.config.search_limit)

        where = {"user_id": actor.user_id, "enterprise_id": actor.enterprise_id}
        if session_id is not None:
            where["session_id"] = session_id

        query_lower = query.lower()
        with timed(self.metrics, "short_term.search"):
            memories = await self.record_store.query(
                MemoryTable.SHORT_TERM, where=where, order_by="created_at", descending=True
            )
            results = [m for m in memories if query_lower in m.content.lower()][:limit]

        if self.metrics:
            self.metrics.record_search(TIER, result_count=len(results))
        return results

    async def mark_for_consolidation(
        self, actor: Optional[ActorContext], memory_ids: Iterable[str]
    ) -> int:
        """Flag the actor's memories for promotion to long-term memory.

        Returns:
            Number of records flagged. Ids the actor does not own are skipped.

        Raises:
            AuthenticationRequired: If actor is None.
        """
        return await self.bridge.mark_for_consolidation(actor, memory_ids)

    async def sweep_expired(self, now: Optional[datetime] = None) -> dict[str, int]:
        """Delete expired memories, keeping those awaiting consolidation.

        A failure on one record is logged and skipped.

        Args:
            now: Reference time (default: current UTC time).

        Returns:
            Statistics: processed, removed, retained, errors.
        """
        if now is None:
            now = utc_now()

        candidates = await self.record_store.query(
            MemoryTable.SHORT_TERM, lt={"expires_at": now}
        )
        # the range filter is a hint; expiry is decided per record
        expired = [m for m in candidates if is_expired(m.expires_at, now)]
        removed = 0
        retained = 0
        errors = 0

        for memory in expired:
            try:
                if memory.is_pending_consolidation:
                    retained += 1
                    continue
                if await self.record_store.delete(MemoryTable.SHORT_TERM, memory.id):
                    removed += 1
            except Exception:
                errors += 1
                logger.exception(f"Failed to clean up expired memory {memory.id}")

        if expired:
            logger.info(
                f"Expiry sweep: {len(expired)} expired, {removed} removed, "
                f"{retained} awaiting consolidation"
            )
        if self.metrics:
            self.metrics.record_sweep(
                "expiration", processed=len(expired), removed=removed, errors=errors
            )

        return {
            "processed": len(expired),
            "removed": removed,
            "retained": retained,
            "errors": errors,
        }

    async def cleanup_expired_memories(self, now: Optional[datetime] = None) -> int:
        """Run the expiry sweep.

        Returns:
            Number of expired records examined.
        """
        stats = await self.sweep_expired(now)
        return stats["processed"]
