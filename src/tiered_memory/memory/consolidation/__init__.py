# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Promotion of short-term memories into long-term memory."""

from tiered_memory.memory.consolidation.bridge import ConsolidationBridge
from tiered_memory.memory.consolidation.pipeline import (
    GroupAnalysis,
    MemoryConsolidator,
    analyze_group,
    group_memories,
)

__all__ = [
    "ConsolidationBridge",
    "GroupAnalysis",
    "MemoryConsolidator",
    "analyze_group",
    "group_memories",
]
