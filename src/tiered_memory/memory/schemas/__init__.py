# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Memory record schemas."""

from tiered_memory.memory.schemas.memory_types import (
    ConsolidationJob,
    ConsolidationStatus,
    Importance,
    LongTermContext,
    LongTermMemory,
    LongTermMemoryCreate,
    MemoryAssociation,
    MemorySource,
    MemoryType,
    RelatedEntity,
    ShortTermContext,
    ShortTermMemory,
    ShortTermMemoryCreate,
    utc_now,
)

__all__ = [
    "ConsolidationJob",
    "ConsolidationStatus",
    "Importance",
    "LongTermContext",
    "LongTermMemory",
    "LongTermMemoryCreate",
    "MemoryAssociation",
    "MemorySource",
    "MemoryType",
    "RelatedEntity",
    "ShortTermContext",
    "ShortTermMemory",
    "ShortTermMemoryCreate",
    "utc_now",
]
