# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Tiered Memory - short-term and long-term memory for user interactions.

Short-term memories are session scoped and expire according to their
importance. Important ones are flagged for consolidation and promoted into
the long-term store, where they gain strength through reinforcement and
lose it through periodic decay.

Usage:
    store = InMemoryRecordStore()
    short_term = ShortTermMemoryProvider(store)
    long_term = LongTermMemoryProvider(store)

    memory_id = await short_term.store(actor, {...})
    await MemoryConsolidator(short_term, long_term).consolidate(actor)
"""

from tiered_memory.exceptions import (
    AuthenticationRequired,
    MemoryNotFoundError,
    MemoryValidationError,
    TieredMemoryError,
)
from tiered_memory.memory.actor import ActorContext
from tiered_memory.memory.consolidation import ConsolidationBridge, MemoryConsolidator
from tiered_memory.memory.providers import LongTermMemoryProvider, ShortTermMemoryProvider
from tiered_memory.memory.storage import InMemoryRecordStore

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ActorContext",
    "AuthenticationRequired",
    "ConsolidationBridge",
    "InMemoryRecordStore",
    "LongTermMemoryProvider",
    "MemoryConsolidator",
    "MemoryNotFoundError",
    "MemoryValidationError",
    "ShortTermMemoryProvider",
    "TieredMemoryError",
]
