# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Per-user memory usage analysis.

Summarizes how much an actor holds in each tier, how fast it is growing,
and suggests maintenance when the numbers drift.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Optional

from tiered_memory.memory.actor import ActorContext, require_actor
from tiered_memory.memory.protocols import MemoryRecordStore, MemoryTable
from tiered_memory.memory.schemas import LongTermMemory, ShortTermMemory, utc_now

TREND_WINDOW_DAYS = 7

# Recommendation thresholds
PENDING_CONSOLIDATION_LIMIT = 20
SHORT_TERM_RATIO_LIMIT = 0.8
WEAK_STRENGTH = 0.3


def _by_type(memories) -> dict[str, int]:
    return dict(Counter(str(m.memory_type) for m in memories))


def recommendations(
    short_term: list[ShortTermMemory], long_term: list[LongTermMemory]
) -> list[str]:
    """Maintenance suggestions for one actor's memories."""
    result = []

    pending = sum(1 for m in short_term if m.is_pending_consolidation)
    if pending > PENDING_CONSOLIDATION_LIMIT:
        result.append(f"Consider consolidating {pending} pending memories")

    total = len(short_term) + len(long_term)
    if total and len(short_term) / total > SHORT_TERM_RATIO_LIMIT:
        result.append(
            "High ratio of short-term memories - consider more frequent consolidation"
        )

    weak = sum(1 for m in long_term if m.strength < WEAK_STRENGTH)
    if weak:
        result.append(f"{weak} weak long-term memories could be cleaned up")

    return result


async def analyze_memory_usage(
    store: MemoryRecordStore,
    actor: Optional[ActorContext],
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Analyze an actor's memory usage.

    Args:
        store: Record store holding both tiers.
        actor: The caller.
        now: Reference time (default: current UTC time).

    Returns:
        Dictionary with summary, by_type, trends and recommendations.

    Raises:
        AuthenticationRequired: If actor is None.
    """
    actor = require_actor(actor, "analyze_memory_usage")
    if now is None:
        now = utc_now()

    owner = {"user_id": actor.user_id, "enterprise_id": actor.enterprise_id}
    short_term = await store.query(MemoryTable.SHORT_TERM, where=owner)
    long_term = await store.query(MemoryTable.LONG_TERM, where=owner)

    since = now - timedelta(days=TREND_WINDOW_DAYS)
    recent_short = sum(1 for m in short_term if m.created_at > since)
    recent_long = sum(1 for m in long_term if m.created_at > since)

    return {
        "summary": {
            "total_short_term_memories": len(short_term),
            "total_long_term_memories": len(long_term),
            "pending_consolidation": sum(
                1 for m in short_term if m.is_pending_consolidation
            ),
        },
        "by_type": {
            "short_term": _by_type(short_term),
            "long_term": _by_type(long_term),
        },
        "trends": {
            "recent_short_term_memories": recent_short,
            "recent_long_term_memories": recent_long,
            "avg_memories_per_day": (recent_short + recent_long) / TREND_WINDOW_DAYS,
        },
        "recommendations": recommendations(short_term, long_term),
    }
