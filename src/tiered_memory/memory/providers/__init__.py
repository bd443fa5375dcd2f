# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Short-term and long-term memory providers."""

from tiered_memory.memory.providers.long_term import LongTermMemoryProvider
from tiered_memory.memory.providers.short_term import ShortTermMemoryProvider

__all__ = [
    "LongTermMemoryProvider",
    "ShortTermMemoryProvider",
]
