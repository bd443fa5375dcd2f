# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Linear strength decay for long-term memories.

A memory loses ``decay_rate`` strength per day since it was last accessed.
Decay never advances ``last_accessed_at``, so re-running it recomputes the
loss from the same anchor.
"""

from datetime import datetime, timezone
from typing import Optional

from tiered_memory.memory.schemas import Importance, LongTermMemory

SECONDS_PER_DAY = 24 * 60 * 60


def days_since(moment: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days elapsed since moment (0.0 if moment is in the future)."""
    if now is None:
        now = datetime.now(timezone.utc)

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    return max(0.0, (now - moment).total_seconds() / SECONDS_PER_DAY)


def calculate_decayed_strength(
    strength: float,
    decay_rate: float,
    last_accessed_at: datetime,
    now: Optional[datetime] = None,
) -> float:
    """Calculate strength after linear decay.

    Formula: max(0, strength - decay_rate * days_since_access)

    Example:
        >>> from datetime import timedelta
        >>> now = datetime.now(timezone.utc)
        >>> calculate_decayed_strength(0.05, 0.02, now - timedelta(days=3), now)
        0.0
    """
    loss = decay_rate * days_since(last_accessed_at, now)
    return max(0.0, strength - loss)


def is_decay_exempt(memory: LongTermMemory) -> bool:
    """Critical and verified memories never decay."""
    return memory.importance == Importance.CRITICAL or memory.is_verified
