# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Similarity, keyword extraction, and relevance scoring."""

from tiered_memory.memory.retrieval.scoring import (
    IMPORTANCE_BOOST,
    rank_by_relevance,
    score_memory,
    sort_by_strength,
)
from tiered_memory.memory.retrieval.similarity import (
    STOP_WORDS,
    extract_keywords,
    lexical_similarity,
    tokenize,
)

__all__ = [
    "IMPORTANCE_BOOST",
    "STOP_WORDS",
    "extract_keywords",
    "lexical_similarity",
    "rank_by_relevance",
    "score_memory",
    "sort_by_strength",
    "tokenize",
]
