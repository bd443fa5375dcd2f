# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Long-term (durable) memory store.

Long-term memories carry a strength in [0, 1] that starts at an
importance-derived value, grows through reinforcement and verification,
and shrinks through the periodic decay sweep:

    importance  initial strength  decay per idle day
    critical    1.0               0.001 (exempt from the sweep)
    high        0.8               0.005
    medium      0.6               0.01
    low         0.4               0.02
    temporary   0.2               0.05

A write whose content is near-identical (similarity > 0.8) to one of the
50 most recent memories of the same user and type reinforces that memory
instead of creating a new one.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from tiered_memory.config import MemoryConfig
from tiered_memory.exceptions import MemoryNotFoundError
from tiered_memory.memory.actor import ActorContext, require_actor
from tiered_memory.memory.consolidation.bridge import ConsolidationBridge
from tiered_memory.memory.lifecycle import (
    calculate_decayed_strength,
    clamp_unit,
    decay_rate,
    initial_strength,
    is_decay_exempt,
)
from tiered_memory.memory.observability.metrics import MemoryMetrics
from tiered_memory.memory.protocols import MemoryRecordStore, MemoryTable, SimilarityScorer
from tiered_memory.memory.providers.base import (
    coerce_importance,
    coerce_input,
    coerce_memory_types,
    resolve_limit,
    timed,
    validate_unit,
)
from tiered_memory.memory.retrieval import (
    extract_keywords,
    lexical_similarity,
    rank_by_relevance,
    sort_by_strength,
)
from tiered_memory.memory.schemas import (
    Importance,
    LongTermMemory,
    LongTermMemoryCreate,
    MemoryType,
    utc_now,
)

logger = logging.getLogger(__name__)

TIER = "long_term"

# Summary length when none is supplied
SUMMARY_LENGTH = 200

# Default threshold for remove_weak_memories
WEAK_MEMORY_THRESHOLD = 0.2


class LongTermMemoryProvider:
    """Durable memory store with strength, decay and reinforcement.

    Example:
        >>> provider = LongTermMemoryProvider(InMemoryRecordStore())
        >>> memory_id = await provider.store(actor, {
        ...     "memory_type": "user_preference",
        ...     "content": "User prefers email notifications over SMS",
        ...     "importance": "medium",
        ...     "confidence": 0.6,
        ...     "source": "conversation",
        ... })
        >>> await provider.verify_memory(actor, memory_id)
        >>> results = await provider.search_memories(actor, "email")

    Attributes:
        record_store: Backing record store.
        bridge: Consolidation bridge used to stamp promoted short-term records.
        similarity: Scorer used for the near-duplicate merge.
        config: Limits and thresholds.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        record_store: MemoryRecordStore,
        bridge: Optional[ConsolidationBridge] = None,
        similarity: Optional[SimilarityScorer] = None,
        config: Optional[MemoryConfig] = None,
        metrics: Optional[MemoryMetrics] = None,
    ):
        """Initialize the provider.

        Args:
            record_store: Backing record store.
            bridge: Consolidation bridge (created over record_store if not provided).
            similarity: Content similarity scorer (default: lexical_similarity).
                An embedding-backed scorer can be plugged in here.
            config: Configuration (defaults if not provided).
            metrics: Metrics collector, or None to disable metrics.
        """
        self.record_store = record_store
        self.bridge = bridge or ConsolidationBridge(record_store)
        self.similarity = similarity or lexical_similarity
        self.config = config or MemoryConfig()
        self.metrics = metrics

    async def _find_similar(
        self, actor: ActorContext, memory_type: MemoryType, content: str
    ) -> Optional[LongTermMemory]:
        candidates = await self.record_store.query(
            MemoryTable.LONG_TERM,
            where={
                "user_id": actor.user_id,
                "enterprise_id": actor.enterprise_id,
                "memory_type": memory_type,
            },
            order_by="created_at",
            descending=True,
            limit=self.config.merge_candidate_window,
        )
        for candidate in candidates:
            if candidate.strength <= 0:
                continue
            if self.similarity(content, candidate.content) > self.config.merge_similarity_threshold:
                return candidate
        return None

    async def store(
        self,
        actor: Optional[ActorContext],
        data: Union[LongTermMemoryCreate, Mapping[str, Any]],
    ) -> str:
        """Store a long-term memory, or reinforce a near-identical one.

        When data lists ``consolidated_from`` ids, those short-term records
        are stamped as consolidated on either path.

        Args:
            actor: The caller.
            data: Memory input.

        Returns:
            Id of the new or reinforced record.

        Raises:
            AuthenticationRequired: If actor is None.
            MemoryValidationError: If data is a mapping that fails validation.
        """
        actor = require_actor(actor, "long_term.store")
        data = coerce_input(LongTermMemoryCreate, data)
        now = utc_now()

        existing = await self._find_similar(actor, data.memory_type, data.content)
        if existing is not None:
            updates = {
                "strength": clamp_unit(existing.strength + self.config.reinforcement_delta),
                "confidence": max(existing.confidence, data.confidence),
                "reinforcement_count": existing.reinforcement_count + 1,
                "last_reinforced_at": now,
                "updated_at": now,
                "importance": Importance.higher(existing.importance, data.importance),
                "access_count": existing.access_count + 1,
                "last_accessed_at": now,
            }
            if data.consolidated_from:
                merged_from = list(existing.consolidated_from)
                merged_from.extend(
                    i for i in data.consolidated_from if i not in merged_from
                )
                updates["consolidated_from"] = merged_from

            await self.record_store.patch(MemoryTable.LONG_TERM, existing.id, updates)
            logger.debug(
                f"Merged write into long-term memory {existing.id} "
                f"(strength {existing.strength:.2f} -> {updates['strength']:.2f})"
            )
            memory_id = existing.id
            merged = True
        else:
            memory = LongTermMemory(
                user_id=actor.user_id,
                enterprise_id=actor.enterprise_id,
                memory_type=data.memory_type,
                content=data.content,
                structured_data=data.structured_data,
                summary=data.summary or data.content[:SUMMARY_LENGTH],
                keywords=(
                    data.keywords if data.keywords is not None else extract_keywords(data.content)
                ),
                context=data.context,
                importance=data.importance,
                confidence=data.confidence,
                source=data.source,
                source_chain=data.source_chain or [],
                consolidated_from=data.consolidated_from or [],
                strength=initial_strength(data.importance),
                reinforcement_count=0,
                decay_rate=decay_rate(data.importance),
                access_count=1,
                last_accessed_at=now,
                created_at=now,
                updated_at=now,
                is_verified=False,
            )
            memory_id = await self.record_store.insert(MemoryTable.LONG_TERM, memory)
            merged = False

        if data.consolidated_from:
            await self.bridge.stamp_consolidated(actor, data.consolidated_from, now)

        if self.metrics:
            self.metrics.record_store(TIER, memory_type=str(data.memory_type), merged=merged)
        return memory_id

    async def get_by_id(
        self, actor: Optional[ActorContext], memory_id: str
    ) -> Optional[LongTermMemory]:
        """Get one of the actor's live long-term memories by id."""
        if actor is None:
            return None
        memory = await self.record_store.get(MemoryTable.LONG_TERM, memory_id)
        if memory is None or not actor.owns(memory) or memory.strength <= 0:
            return None
        return memory

    async def _require_owned(self, actor: ActorContext, memory_id: str) -> LongTermMemory:
        memory = await self.record_store.get(MemoryTable.LONG_TERM, memory_id)
        if memory is None or not actor.owns(memory):
            raise MemoryNotFoundError(memory_id)
        return memory

    async def reinforce_memory(
        self,
        actor: Optional[ActorContext],
        memory_id: str,
        delta: Optional[float] = None,
    ) -> LongTermMemory:
        """Strengthen a memory.

        Importance and confidence are left unchanged.

        Args:
            actor: The caller.
            memory_id: Memory to reinforce.
            delta: Strength to add (default from config, 0.1).

        Returns:
            The updated memory.

        Raises:
            AuthenticationRequired: If actor is None.
            MemoryNotFoundError: If the memory does not exist or is not the actor's.
            MemoryValidationError: If delta is outside [0, 1].
        """
        actor = require_actor(actor, "reinforce_memory")
        if delta is None:
            delta = self.config.reinforcement_delta
        validate_unit("delta", delta)

        memory = await self._require_owned(actor, memory_id)
        now = utc_now()
        updated = await self.record_store.patch(
            MemoryTable.LONG_TERM,
            memory_id,
            {
                "strength": clamp_unit(memory.strength + delta),
                "reinforcement_count": memory.reinforcement_count + 1,
                "last_reinforced_at": now,
                "updated_at": now,
            },
        )
        if updated is None:
            raise MemoryNotFoundError(memory_id)
        return updated

    async def verify_memory(
        self, actor: Optional[ActorContext], memory_id: str
    ) -> LongTermMemory:
        """Mark a memory as user-confirmed.

        Verified memories have full confidence and are exempt from decay.

        Raises:
            AuthenticationRequired: If actor is None.
            MemoryNotFoundError: If the memory does not exist or is not the actor's.
        """
        actor = require_actor(actor, "verify_memory")
        memory = await self._require_owned(actor, memory_id)

        updated = await self.record_store.patch(
            MemoryTable.LONG_TERM,
            memory_id,
            {
                "is_verified": True,
                "confidence": 1.0,
                "strength": clamp_unit(memory.strength + self.config.verification_boost),
                "updated_at": utc_now(),
            },
        )
        if updated is None:
            raise MemoryNotFoundError(memory_id)
        logger.debug(f"Verified long-term memory {memory_id}")
        return updated

    async def apply_decay(self, now: Optional[datetime] = None) -> dict[str, int]:
        """Decay memories idle for longer than the configured window.

        Critical and verified memories are skipped. Memories whose strength
        reaches zero are deleted. Access timestamps are not advanced, so
        re-running the sweep recomputes the loss from the same anchor.

        Args:
            now: Reference time (default: current UTC time).

        Returns:
            Statistics: processed, decayed, deleted, skipped, errors.
        """
        if now is None:
            now = utc_now()
        cutoff = now - timedelta(hours=self.config.decay_idle_hours)

        idle = await self.record_store.query(
            MemoryTable.LONG_TERM, lt={"last_accessed_at": cutoff}
        )
        decayed = 0
        deleted = 0
        skipped = 0
        errors = 0

        for memory in idle:
            try:
                if is_decay_exempt(memory):
                    skipped += 1
                    continue

                new_strength = calculate_decayed_strength(
                    memory.strength, memory.decay_rate, memory.last_accessed_at, now
                )
                if new_strength > 0:
                    await self.record_store.patch(
                        MemoryTable.LONG_TERM, memory.id, {"strength": new_strength}
                    )
                    decayed += 1
                else:
                    await self.record_store.delete(MemoryTable.LONG_TERM, memory.id)
                    deleted += 1
            except Exception:
                errors += 1
                logger.exception(f"Failed to decay memory {memory.id}")

        if idle:
            logger.info(
                f"Decay sweep: {len(idle)} idle, {decayed} decayed, "
                f"{deleted} deleted, {skipped} exempt"
            )
        if self.metrics:
            self.metrics.record_sweep("decay", processed=len(idle), removed=deleted, errors=errors)

        return {
            "processed": len(idle),
            "decayed": decayed,
            "deleted": deleted,
            "skipped": skipped,
            "errors": errors,
        }

    async def _owned_memories(
        self,
        actor: ActorContext,
        memory_types: Optional[list[MemoryType]],
    ) -> list[LongTermMemory]:
        owner = {"user_id": actor.user_id, "enterprise_id": actor.enterprise_id}
        if not memory_types:
            memories = await self.record_store.query(MemoryTable.LONG_TERM, where=owner)
        else:
            memories = []
            for memory_type in memory_types:
                memories.extend(
                    await self.record_store.query(
                        MemoryTable.LONG_TERM, where={**owner, "memory_type": memory_type}
                    )
                )
        return [m for m in memories if m.strength > 0]

    async def get_memories(
        self,
        actor: Optional[ActorContext],
        memory_types: Optional[Iterable[Union[MemoryType, str]]] = None,
        min_importance: Optional[Union[Importance, str]] = None,
        min_strength: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> list[LongTermMemory]:
        """List memories by strength.

        All filters apply before sorting, and sorting before truncation.
        Strengths within 0.1 of each other are ordered by last access.

        Args:
            actor: The caller. None yields no results.
            memory_types: Restrict to these types.
            min_importance: Keep memories at or above this importance.
            min_strength: Keep memories with at least this strength.
            limit: Maximum results (default from config).

        Returns:
            Matching memories, strongest first.
        """
        if actor is None:
            return []
        types = coerce_memory_types(memory_types)
        threshold = coerce_importance(min_importance)
        limit = resolve_limit(limit, self.config.read_limit)

        memories = await self._owned_memories(actor, types)
        if threshold is not None:
            memories = [m for m in memories if m.importance.at_least(threshold)]
        if min_strength is not None:
            memories = [m for m in memories if m.strength >= min_strength]

        results = sort_by_strength(memories)[:limit]

        if self.metrics:
            self.metrics.record_search(TIER, result_count=len(results))
        return results

    async def search_memories(
        self,
        actor: Optional[ActorContext],
        query: str,
        memory_types: Optional[Iterable[Union[MemoryType, str]]] = None,
        limit: Optional[int] = None,
    ) -> list[LongTermMemory]:
        """Relevance-ranked free-text search.

        See ``tiered_memory.memory.retrieval.scoring`` for the scoring rules.

        Args:
            actor: The caller. None yields no results.
            query: Free-text query.
            memory_types: Restrict to these types.
            limit: Maximum results (default from config).

        Returns:
            Matching memories, most relevant first.
        """
        if actor is None:
            return []
        types = coerce_memory_types(memory_types)
        limit = resolve_limit(limit, self.config.search_limit)

        with timed(self.metrics, "long_term.search"):
            memories = await self._owned_memories(actor, types)
            ranked = rank_by_relevance(memories, query, limit)

        if self.metrics:
            self.metrics.record_search(TIER, result_count=len(ranked))
        return [memory for memory, _ in ranked]

    async def get_related_memories(
        self,
        actor: Optional[ActorContext],
        memory_id: str,
        limit: Optional[int] = None,
    ) -> list[LongTermMemory]:
        """Expand a memory to its related memories.

        Related ids come from the memory's ``context.related_memories`` and
        from association edges starting at it. Ids that no longer resolve
        are dropped.

        Args:
            actor: The caller. None yields no results.
            memory_id: Memory to expand.
            limit: Maximum number of ids resolved (default from config).

        Returns:
            Related memories.
        """
        if actor is None:
            return []
        limit = resolve_limit(limit, self.config.related_limit)

        memory = await self.get_by_id(actor, memory_id)
        if memory is None:
            return []

        related_ids = list(memory.context.related_memories)
        edges = await self.record_store.query(
            MemoryTable.ASSOCIATIONS, where={"from_memory_id": memory_id}
        )
        related_ids.extend(edge.to_memory_id for edge in edges)

        # dict.fromkeys keeps first-seen order
        unique_ids = [i for i in dict.fromkeys(related_ids) if i != memory_id]

        related = []
        for related_id in unique_ids[:limit]:
            resolved = await self.get_by_id(actor, related_id)
            if resolved is not None:
                related.append(resolved)
        return related

    async def remove_weak_memories(
        self,
        actor: Optional[ActorContext],
        threshold: float = WEAK_MEMORY_THRESHOLD,
        dry_run: bool = False,
    ) -> int:
        """Delete the actor's memories weaker than threshold.

        Args:
            actor: The caller.
            threshold: Strength below which memories are removed.
            dry_run: If True, only count what would be removed.

        Returns:
            Number of memories removed (or that would be removed).

        Raises:
            AuthenticationRequired: If actor is None.
            MemoryValidationError: If threshold is outside [0, 1].
        """
        actor = require_actor(actor, "remove_weak_memories")
        validate_unit("threshold", threshold)

        weak = await self.record_store.query(
            MemoryTable.LONG_TERM,
            where={"user_id": actor.user_id, "enterprise_id": actor.enterprise_id},
            lt={"strength": threshold},
        )
        if dry_run:
            return len(weak)

        removed = await self.record_store.delete_many(
            MemoryTable.LONG_TERM, [m.id for m in weak]
        )
        logger.info(f"Removed {removed} weak long-term memories for user {actor.user_id}")
        return removed
