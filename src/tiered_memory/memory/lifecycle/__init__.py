# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Memory lifecycle: expiry, initial strength, and decay."""

from tiered_memory.memory.lifecycle.decay import (
    calculate_decayed_strength,
    days_since,
    is_decay_exempt,
)
from tiered_memory.memory.lifecycle.policies import (
    DECAY_RATE,
    INITIAL_STRENGTH,
    SHORT_TERM_TTL,
    calculate_expiration,
    clamp_unit,
    decay_rate,
    initial_strength,
    is_expired,
    should_consolidate,
)

__all__ = [
    "DECAY_RATE",
    "INITIAL_STRENGTH",
    "SHORT_TERM_TTL",
    "calculate_decayed_strength",
    "calculate_expiration",
    "clamp_unit",
    "days_since",
    "decay_rate",
    "initial_strength",
    "is_decay_exempt",
    "is_expired",
    "should_consolidate",
]
