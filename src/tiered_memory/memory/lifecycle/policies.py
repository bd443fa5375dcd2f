# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Memory lifecycle policies.

Importance-keyed lookup tables for short-term TTL, long-term initial
strength, and long-term decay rate, plus the expiration helpers built on
them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from tiered_memory.memory.schemas import Importance

# Short-term TTL by importance. Critical is effectively non-expiring.
SHORT_TERM_TTL: dict[Importance, timedelta] = {
    Importance.CRITICAL: timedelta(days=365),
    Importance.HIGH: timedelta(days=7),
    Importance.MEDIUM: timedelta(hours=24),
    Importance.LOW: timedelta(hours=4),
    Importance.TEMPORARY: timedelta(minutes=30),
}

# Long-term strength at creation
INITIAL_STRENGTH: dict[Importance, float] = {
    Importance.CRITICAL: 1.0,
    Importance.HIGH: 0.8,
    Importance.MEDIUM: 0.6,
    Importance.LOW: 0.4,
    Importance.TEMPORARY: 0.2,
}

# Long-term strength lost per idle day
DECAY_RATE: dict[Importance, float] = {
    Importance.CRITICAL: 0.001,
    Importance.HIGH: 0.005,
    Importance.MEDIUM: 0.01,
    Importance.LOW: 0.02,
    Importance.TEMPORARY: 0.05,
}

# Importance levels flagged for consolidation at short-term creation
CONSOLIDATION_IMPORTANCE = frozenset({Importance.CRITICAL, Importance.HIGH})


def calculate_expiration(
    importance: Importance,
    now: Optional[datetime] = None,
) -> datetime:
    """Calculate a short-term expiry from importance.

    Args:
        importance: Importance of the memory.
        now: Reference time (default: current UTC time).

    Returns:
        The datetime when the memory should expire.

    Example:
        >>> created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> calculate_expiration(Importance.TEMPORARY, created)
        datetime.datetime(2024, 1, 1, 0, 30, tzinfo=datetime.timezone.utc)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return now + SHORT_TERM_TTL[importance]


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Check if an expiry time has passed.

    Returns False if expires_at is None (no expiration set).
    """
    if expires_at is None:
        return False

    if now is None:
        now = datetime.now(timezone.utc)

    # Ensure timezone aware comparison
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    return expires_at < now


def should_consolidate(importance: Importance) -> bool:
    """Whether a new short-term memory is flagged for consolidation."""
    return importance in CONSOLIDATION_IMPORTANCE


def initial_strength(importance: Importance) -> float:
    """Strength of a freshly created long-term memory."""
    return INITIAL_STRENGTH[importance]


def decay_rate(importance: Importance) -> float:
    """Per-day strength loss of a long-term memory."""
    return DECAY_RATE[importance]


def clamp_unit(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return max(0.0, min(1.0, value))
