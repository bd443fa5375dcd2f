# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Root pytest configuration with shared fixtures and markers.

This file is automatically loaded by pytest and provides:
- Custom markers for test categories
- A fresh in-memory record store per test
- Actors and providers wired over that store
- Factories for write inputs and directly inserted records
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tiered_memory.memory.actor import ActorContext
from tiered_memory.memory.consolidation import ConsolidationBridge, MemoryConsolidator
from tiered_memory.memory.lifecycle import decay_rate, initial_strength
from tiered_memory.memory.observability import MemoryMetrics
from tiered_memory.memory.protocols import MemoryTable
from tiered_memory.memory.providers import LongTermMemoryProvider, ShortTermMemoryProvider
from tiered_memory.memory.schemas import (
    Importance,
    LongTermMemory,
    MemorySource,
    MemoryType,
    ShortTermMemory,
)
from tiered_memory.memory.storage import InMemoryRecordStore


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: Mark test as integration test (several components)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Mark test as slow-running (may be skipped in quick runs)",
    )


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def temp_user_id():
    """Generate a temporary user ID for isolation tests."""
    return f"test-user-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def actor(temp_user_id):
    """Authenticated caller."""
    return ActorContext(user_id=temp_user_id, enterprise_id="enterprise-1")


@pytest.fixture
def other_actor():
    """A second caller in another organization."""
    return ActorContext(user_id="intruder", enterprise_id="enterprise-2")


@pytest.fixture
def now():
    """Fixed reference time."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def record_store():
    """Empty in-memory record store."""
    return InMemoryRecordStore()


@pytest.fixture
def metrics():
    return MemoryMetrics()


@pytest.fixture
def bridge(record_store):
    return ConsolidationBridge(record_store)


@pytest.fixture
def short_term(record_store, bridge):
    """Short-term provider over the shared store."""
    return ShortTermMemoryProvider(record_store, bridge=bridge)


@pytest.fixture
def long_term(record_store, bridge):
    """Long-term provider over the shared store."""
    return LongTermMemoryProvider(record_store, bridge=bridge)


@pytest.fixture
def consolidator(short_term, long_term):
    return MemoryConsolidator(short_term, long_term)


@pytest.fixture
def short_term_input():
    """Factory for short-term write input mappings."""

    def _make(**overrides):
        data = {
            "session_id": "session-1",
            "memory_type": "user_preference",
            "content": "Prefers dark mode in the dashboard",
            "importance": "medium",
            "confidence": 0.7,
            "source": "conversation",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def long_term_input():
    """Factory for long-term write input mappings."""

    def _make(**overrides):
        data = {
            "memory_type": "user_preference",
            "content": "User prefers email notifications over SMS",
            "importance": "medium",
            "confidence": 0.6,
            "source": "conversation",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def insert_long_term(record_store, actor, now):
    """Insert a long-term record directly, bypassing the write path."""

    async def _insert(content="Stored memory", importance=Importance.MEDIUM, owner=None, **fields):
        owner = owner or actor
        values = {
            "user_id": owner.user_id,
            "enterprise_id": owner.enterprise_id,
            "memory_type": MemoryType.DOMAIN_KNOWLEDGE,
            "content": content,
            "summary": content,
            "importance": importance,
            "confidence": 0.7,
            "source": MemorySource.CONVERSATION,
            "strength": initial_strength(importance),
            "decay_rate": decay_rate(importance),
            "last_accessed_at": now,
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        return await record_store.insert(MemoryTable.LONG_TERM, LongTermMemory(**values))

    return _insert


@pytest.fixture
def insert_short_term(record_store, actor, now):
    """Insert a short-term record directly, bypassing the write path."""

    async def _insert(content="Short-term note", importance=Importance.HIGH, owner=None, **fields):
        owner = owner or actor
        values = {
            "user_id": owner.user_id,
            "enterprise_id": owner.enterprise_id,
            "session_id": "session-1",
            "memory_type": MemoryType.USER_PREFERENCE,
            "content": content,
            "importance": importance,
            "confidence": 0.8,
            "source": MemorySource.CONVERSATION,
            "created_at": now,
            "last_accessed_at": now,
            "expires_at": now + timedelta(days=7),
            "should_consolidate": True,
        }
        values.update(fields)
        return await record_store.insert(MemoryTable.SHORT_TERM, ShortTermMemory(**values))

    return _insert
