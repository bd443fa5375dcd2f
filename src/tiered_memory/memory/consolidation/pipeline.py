# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Short-term to long-term consolidation.

A consolidation run collects the actor's pending short-term memories,
groups them by memory type and by the contract, vendor and task they were
captured around, condenses each group into one long-term memory, and
stamps every processed short-term record as consolidated.

Each run is recorded as a ConsolidationJob:

    pending -> processing -> completed | failed
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from tiered_memory.config import MemoryConfig
from tiered_memory.memory.actor import ActorContext, require_actor
from tiered_memory.memory.consolidation.bridge import ConsolidationBridge
from tiered_memory.memory.observability.metrics import MemoryMetrics
from tiered_memory.memory.protocols import MemoryTable
from tiered_memory.memory.retrieval import extract_keywords, tokenize
from tiered_memory.memory.schemas import (
    ConsolidationJob,
    ConsolidationStatus,
    Importance,
    LongTermContext,
    LongTermMemoryCreate,
    MemorySource,
    MemoryType,
    ShortTermMemory,
    utc_now,
)

if TYPE_CHECKING:
    from tiered_memory.memory.providers import LongTermMemoryProvider, ShortTermMemoryProvider

logger = logging.getLogger(__name__)

# Share of a group an importance level must hold to be chosen
IMPORTANCE_QUORUM = 0.3

# Confidence bonus for groups larger than CONSISTENCY_GROUP_SIZE
CONSISTENCY_BONUS = 0.1
CONSISTENCY_GROUP_SIZE = 3

# A record adds its sentences only when it brings this many new words
MIN_NEW_WORDS = 3
MAX_ADDED_SENTENCES = 2

MAX_GROUP_KEYWORDS = 20
MAX_SUMMARY_PATTERNS = 3
SUMMARY_LENGTH = 200

DOMAIN_BY_TYPE: dict[MemoryType, str] = {
    MemoryType.DOMAIN_KNOWLEDGE: "contract_management",
    MemoryType.USER_PREFERENCE: "user_settings",
    MemoryType.TASK_HISTORY: "task_execution",
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


@dataclass
class GroupAnalysis:
    """Condensed view of a group of short-term memories."""

    content: str
    summary: str
    keywords: list[str]
    importance: Importance
    confidence: float
    patterns: list[str]
    domain: str
    tags: list[str]
    source: MemorySource
    source_chain: list[str]
    contract_ids: list[str] = field(default_factory=list)
    vendor_ids: list[str] = field(default_factory=list)
    structured_data: Optional[dict[str, Any]] = None


def group_key(memory: ShortTermMemory) -> str:
    """Grouping key: memory type plus contract, vendor and task context."""
    context = memory.context
    parts = [p for p in (context.contract_id, context.vendor_id, context.task_id) if p]
    return f"{memory.memory_type}-{'-'.join(parts) or 'general'}"


def group_memories(memories: list[ShortTermMemory]) -> list[list[ShortTermMemory]]:
    """Group memories by group_key, keeping first-seen order."""
    groups: dict[str, list[ShortTermMemory]] = {}
    for memory in memories:
        groups.setdefault(group_key(memory), []).append(memory)
    return list(groups.values())


def consolidated_importance(memories: list[ShortTermMemory]) -> Importance:
    """Highest importance held by at least 30% of the group, else medium."""
    counts = Counter(m.importance for m in memories)
    total = len(memories)
    for level in sorted(Importance, key=lambda i: i.rank, reverse=True):
        if counts[level] / total >= IMPORTANCE_QUORUM:
            return level
    return Importance.MEDIUM


def group_confidence(memories: list[ShortTermMemory]) -> float:
    """Mean confidence, plus a bonus for larger groups, capped at 1."""
    average = sum(m.confidence for m in memories) / len(memories)
    bonus = CONSISTENCY_BONUS if len(memories) > CONSISTENCY_GROUP_SIZE else 0.0
    return min(1.0, average + bonus)


def extract_concepts(text: str) -> list[str]:
    """Adjacent word pairs where both words are longer than 3 characters."""
    words = tokenize(text)
    return [
        f"{first} {second}"
        for first, second in zip(words, words[1:])
        if len(first) > 3 and len(second) > 3
    ]


def extract_patterns(memories: list[ShortTermMemory]) -> list[str]:
    """Concepts recurring across the group.

    A concept is a pattern when its occurrence count reaches
    min(3, half the group size).
    """
    counts: Counter[str] = Counter()
    for memory in memories:
        counts.update(extract_concepts(memory.content))

    required = min(3, len(memories) * 0.5)
    return [concept for concept, count in counts.items() if count >= required]


def extract_unique_information(new_content: str, existing_content: str) -> str:
    """Sentences of new_content carrying words existing_content lacks.

    Returns an empty string unless new_content has at least three new
    words; otherwise at most two sentences are returned.
    """
    existing_words = set(tokenize(existing_content))
    unique_words = set(tokenize(new_content)) - existing_words
    if len(unique_words) < MIN_NEW_WORDS:
        return ""

    sentences = [
        sentence
        for sentence in _SENTENCE_SPLIT.split(new_content)
        if any(word in unique_words for word in tokenize(sentence))
    ]
    return ". ".join(s.strip() for s in sentences[:MAX_ADDED_SENTENCES])


def consolidated_content(memories: list[ShortTermMemory], patterns: list[str]) -> str:
    """Merge group content, most important and confident record first."""
    ordered = sorted(memories, key=lambda m: (-m.importance.rank, -m.confidence))
    content = ordered[0].content
    for memory in ordered[1:]:
        addition = extract_unique_information(memory.content, content)
        if addition:
            content += f" {addition}"
    if patterns:
        content += f" Key patterns: {', '.join(patterns)}."
    return content


def summarize(content: str, patterns: list[str]) -> str:
    summary = content[:SUMMARY_LENGTH]
    if len(content) > SUMMARY_LENGTH:
        summary += "..."
    if patterns:
        summary += f" Patterns: {', '.join(patterns[:MAX_SUMMARY_PATTERNS])}"
    return summary


def primary_source(memories: list[ShortTermMemory]) -> MemorySource:
    """Most frequent source; ties go to the one seen first."""
    return Counter(m.source for m in memories).most_common(1)[0][0]


def group_tags(memories: list[ShortTermMemory]) -> list[str]:
    tags: dict[str, None] = {}
    for memory in memories:
        tags[str(memory.memory_type)] = None
        tags[str(memory.source)] = None
        if memory.context.contract_id:
            tags["contract-related"] = None
        if memory.context.vendor_id:
            tags["vendor-related"] = None
        if memory.context.task_id:
            tags["task-related"] = None
    return list(tags)


def merge_structured_data(memories: list[ShortTermMemory]) -> Optional[dict[str, Any]]:
    """Merge dict payloads in order; later records win on key clashes."""
    merged: dict[str, Any] = {}
    for memory in memories:
        if isinstance(memory.structured_data, dict):
            merged.update(memory.structured_data)
    return merged or None


def analyze_group(memories: list[ShortTermMemory]) -> GroupAnalysis:
    """Condense a non-empty group of short-term memories.

    Args:
        memories: Records sharing a group key.

    Returns:
        The analysis used to build the long-term memory.
    """
    patterns = extract_patterns(memories)
    content = consolidated_content(memories, patterns)

    keywords: dict[str, None] = {}
    for memory in memories:
        for keyword in extract_keywords(memory.content):
            keywords[keyword] = None

    contract_ids = list(
        dict.fromkeys(m.context.contract_id for m in memories if m.context.contract_id)
    )
    vendor_ids = list(
        dict.fromkeys(m.context.vendor_id for m in memories if m.context.vendor_id)
    )

    return GroupAnalysis(
        content=content,
        summary=summarize(content, patterns),
        keywords=list(keywords)[:MAX_GROUP_KEYWORDS],
        importance=consolidated_importance(memories),
        confidence=group_confidence(memories),
        patterns=patterns,
        domain=DOMAIN_BY_TYPE.get(memories[0].memory_type, "general"),
        tags=group_tags(memories),
        source=primary_source(memories),
        source_chain=[f"{m.source}: {m.created_at.isoformat()}" for m in memories],
        contract_ids=contract_ids,
        vendor_ids=vendor_ids,
        structured_data=merge_structured_data(memories),
    )


class MemoryConsolidator:
    """Promotes pending short-term memories into long-term memory.

    Long-term writes go through LongTermMemoryProvider.store, so a
    condensed group that closely matches an existing long-term memory
    reinforces it rather than creating a duplicate.

    Example:
        >>> consolidator = MemoryConsolidator(short_term, long_term)
        >>> job = await consolidator.consolidate(actor)
        >>> print(job.status, job.memories_consolidated)
    """

    def __init__(
        self,
        short_term: "ShortTermMemoryProvider",
        long_term: "LongTermMemoryProvider",
        bridge: Optional[ConsolidationBridge] = None,
        config: Optional[MemoryConfig] = None,
        metrics: Optional[MemoryMetrics] = None,
    ):
        """Initialize the consolidator.

        Args:
            short_term: Short-term provider.
            long_term: Long-term provider.
            bridge: Consolidation bridge (default: the short-term provider's).
            config: Configuration (defaults if not provided).
            metrics: Metrics collector, or None to disable metrics.
        """
        self.short_term = short_term
        self.long_term = long_term
        self.bridge = bridge or short_term.bridge
        self.config = config or MemoryConfig()
        self.metrics = metrics

    @property
    def record_store(self):
        return self.short_term.record_store

    async def _update_job(self, job: ConsolidationJob, **updates: Any) -> ConsolidationJob:
        job = job.model_copy(update=updates)
        await self.record_store.patch(MemoryTable.CONSOLIDATION_JOBS, job.id, updates)
        return job

    async def consolidate(
        self,
        actor: Optional[ActorContext],
        session_id: Optional[str] = None,
    ) -> Optional[ConsolidationJob]:
        """Consolidate the actor's pending short-term memories.

        Failures inside the run mark the job failed; they are logged and
        not raised.

        Args:
            actor: The caller.
            session_id: Restrict to one session.

        Returns:
            The finished job, or None if nothing was pending.

        Raises:
            AuthenticationRequired: If actor is None.
        """
        actor = require_actor(actor, "consolidate")
        pending = await self.bridge.pending_memories(actor, session_id)
        if not pending:
            logger.debug(f"No memories to consolidate for user {actor.user_id}")
            return None

        job = ConsolidationJob(
            user_id=actor.user_id,
            enterprise_id=actor.enterprise_id,
            short_term_memory_ids=[m.id for m in pending],
        )
        job.id = await self.record_store.insert(MemoryTable.CONSOLIDATION_JOBS, job)
        job = await self._update_job(
            job, status=ConsolidationStatus.PROCESSING, started_at=utc_now()
        )

        try:
            created_ids: list[str] = []
            patterns_found = 0

            for group in group_memories(pending):
                analysis = analyze_group(group)
                if analysis.confidence < self.config.consolidation_min_confidence:
                    logger.debug(
                        f"Skipping group of {len(group)} memories "
                        f"(confidence {analysis.confidence:.2f})"
                    )
                    continue

                # A new record starts unreinforced with one access; group size and
                # short-term access counts are not carried over.
                memory_id = await self.long_term.store(
                    actor,
                    LongTermMemoryCreate(
                        memory_type=group[0].memory_type,
                        content=analysis.content,
                        structured_data=analysis.structured_data,
                        summary=analysis.summary,
                        keywords=analysis.keywords,
                        context=LongTermContext(
                            domain=analysis.domain,
                            contract_ids=analysis.contract_ids,
                            vendor_ids=analysis.vendor_ids,
                            tags=analysis.tags,
                        ),
                        importance=analysis.importance,
                        confidence=analysis.confidence,
                        source=analysis.source,
                        source_chain=analysis.source_chain,
                        consolidated_from=[m.id for m in group],
                    ),
                )
                created_ids.append(memory_id)
                patterns_found += len(analysis.patterns)

            now = utc_now()
            await self.bridge.stamp_consolidated(actor, [m.id for m in pending], now)

            job = await self._update_job(
                job,
                status=ConsolidationStatus.COMPLETED,
                completed_at=now,
                created_long_term_memory_ids=created_ids,
                memories_processed=len(pending),
                memories_consolidated=len(created_ids),
                patterns_found=patterns_found,
            )
            logger.info(
                f"Consolidated {len(pending)} memories into {len(created_ids)} "
                f"long-term memories for user {actor.user_id}"
            )
        except Exception as e:
            logger.exception(f"Consolidation job {job.id} failed")
            job = await self._update_job(
                job,
                status=ConsolidationStatus.FAILED,
                completed_at=utc_now(),
                error=str(e) or type(e).__name__,
            )

        if self.metrics:
            self.metrics.record_sweep(
                "consolidation",
                processed=job.memories_processed,
                errors=1 if job.status == ConsolidationStatus.FAILED else 0,
            )
        return job

    async def consolidate_all(self) -> dict[str, int]:
        """Consolidate pending memories for every owner that has some.

        A failing owner is logged and skipped.

        Returns:
            Statistics: owners, jobs, processed, consolidated, failed.
        """
        stats = {"owners": 0, "jobs": 0, "processed": 0, "consolidated": 0, "failed": 0}

        for owner in await self.bridge.pending_owners():
            stats["owners"] += 1
            try:
                job = await self.consolidate(owner)
            except Exception:
                stats["failed"] += 1
                logger.exception(f"Consolidation failed for user {owner.user_id}")
                continue
            if job is None:
                continue
            stats["jobs"] += 1
            if job.status == ConsolidationStatus.FAILED:
                stats["failed"] += 1
            stats["processed"] += job.memories_processed
            stats["consolidated"] += job.memories_consolidated

        return stats
