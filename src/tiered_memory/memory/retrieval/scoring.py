# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Relevance scoring and ordering for long-term memories.

Search scoring:
- +3 if the content contains the query (case-insensitive)
- +2 if the summary contains it
- +1.5 per query keyword found inside any stored keyword
- +1 per tag containing the query
- times strength, then times the importance boost (critical 2.0, high 1.5)
"""

import functools
from typing import Optional, Sequence

from tiered_memory.memory.retrieval.similarity import extract_keywords
from tiered_memory.memory.schemas import Importance, LongTermMemory

CONTENT_MATCH_SCORE = 3.0
SUMMARY_MATCH_SCORE = 2.0
KEYWORD_MATCH_SCORE = 1.5
TAG_MATCH_SCORE = 1.0

IMPORTANCE_BOOST: dict[Importance, float] = {
    Importance.CRITICAL: 2.0,
    Importance.HIGH: 1.5,
}

# Strengths closer than this are ordered by recency instead
STRENGTH_TIE_MARGIN = 0.1


def score_memory(
    memory: LongTermMemory,
    query: str,
    query_keywords: Optional[Sequence[str]] = None,
) -> float:
    """Score a memory against a free-text query.

    Args:
        memory: Memory to score.
        query: Raw query text.
        query_keywords: Keywords of the query; extracted if not given.

    Returns:
        Relevance score, 0.0 when nothing matched.
    """
    query_lower = query.lower()
    if query_keywords is None:
        query_keywords = extract_keywords(query)

    score = 0.0

    if query_lower in memory.content.lower():
        score += CONTENT_MATCH_SCORE

    if memory.summary and query_lower in memory.summary.lower():
        score += SUMMARY_MATCH_SCORE

    if memory.keywords:
        stored = [keyword.lower() for keyword in memory.keywords]
        matches = sum(
            1 for keyword in query_keywords if any(keyword in s for s in stored)
        )
        score += matches * KEYWORD_MATCH_SCORE

    tag_matches = sum(1 for tag in memory.context.tags if query_lower in tag.lower())
    score += tag_matches * TAG_MATCH_SCORE

    score *= memory.strength
    score *= IMPORTANCE_BOOST.get(memory.importance, 1.0)

    return score


def rank_by_relevance(
    memories: Sequence[LongTermMemory], query: str, limit: int
) -> list[tuple[LongTermMemory, float]]:
    """Score memories, drop non-matches, and return the top results.

    Returns:
        (memory, score) tuples sorted by score descending.
    """
    query_keywords = extract_keywords(query)

    scored = []
    for memory in memories:
        score = score_memory(memory, query, query_keywords)
        if score > 0:
            scored.append((memory, score))

    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


def _compare_strength_then_recency(a: LongTermMemory, b: LongTermMemory) -> int:
    strength_diff = b.strength - a.strength
    if abs(strength_diff) > STRENGTH_TIE_MARGIN:
        return 1 if strength_diff > 0 else -1
    if a.last_accessed_at == b.last_accessed_at:
        return 0
    return 1 if b.last_accessed_at > a.last_accessed_at else -1


def sort_by_strength(memories: Sequence[LongTermMemory]) -> list[LongTermMemory]:
    """Order memories by strength descending.

    Strengths within STRENGTH_TIE_MARGIN of each other are ordered by
    last access, most recent first.
    """
    return sorted(memories, key=functools.cmp_to_key(_compare_strength_then_recency))
