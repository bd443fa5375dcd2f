# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the short-term (session-scoped) memory provider.

Covers idempotent writes, importance-derived expiry, the read paths,
consolidation marking and the expiry sweep.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tiered_memory.exceptions import AuthenticationRequired, MemoryValidationError
from tiered_memory.memory.protocols import MemoryTable
from tiered_memory.memory.schemas import (
    Importance,
    MemorySource,
    MemoryType,
    ShortTermMemoryCreate,
)


class TestShortTermStore:
    """Tests for ShortTermMemoryProvider.store."""

    @pytest.mark.asyncio
    async def test_store_returns_id(self, short_term, actor, short_term_input):
        """Store should return the id of the new record."""
        memory_id = await short_term.store(actor, short_term_input())

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory is not None
        assert memory.user_id == actor.user_id
        assert memory.enterprise_id == actor.enterprise_id
        assert memory.access_count == 1
        assert memory.is_processed is False

    @pytest.mark.asyncio
    async def test_store_accepts_model_input(self, short_term, actor):
        """Store should accept the pydantic input model as well as a mapping."""
        data = ShortTermMemoryCreate(
            session_id="session-1",
            memory_type=MemoryType.FEEDBACK,
            content="Liked the weekly summary",
            importance=Importance.LOW,
            confidence=0.5,
            source=MemorySource.EXPLICIT_FEEDBACK,
        )
        memory_id = await short_term.store(actor, data)

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.memory_type == MemoryType.FEEDBACK

    @pytest.mark.asyncio
    async def test_identical_write_is_idempotent(
        self, short_term, actor, short_term_input, record_store
    ):
        """Storing the same (session, type, content) twice yields one record."""
        first = await short_term.store(actor, short_term_input())
        second = await short_term.store(actor, short_term_input())

        assert first == second
        assert record_store.count(MemoryTable.SHORT_TERM) == 1
        memory = await short_term.get_by_id(actor, first)
        assert memory.access_count == 2

    @pytest.mark.asyncio
    async def test_repeat_write_overwrites_importance_keeps_max_confidence(
        self, short_term, actor, short_term_input
    ):
        """A repeat write takes the new importance and the higher confidence."""
        memory_id = await short_term.store(
            actor, short_term_input(importance="medium", confidence=0.9)
        )
        await short_term.store(actor, short_term_input(importance="low", confidence=0.4))

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.importance == Importance.LOW
        assert memory.confidence == 0.9

    @pytest.mark.asyncio
    async def test_different_session_creates_new_record(
        self, short_term, actor, short_term_input, record_store
    ):
        """Same content in another session is a separate record."""
        await short_term.store(actor, short_term_input(session_id="session-1"))
        await short_term.store(actor, short_term_input(session_id="session-2"))

        assert record_store.count(MemoryTable.SHORT_TERM) == 2

    @pytest.mark.asyncio
    async def test_other_user_does_not_share_record(
        self, short_term, actor, other_actor, short_term_input, record_store
    ):
        """Identical writes by different users are not merged."""
        await short_term.store(actor, short_term_input())
        await short_term.store(other_actor, short_term_input())

        assert record_store.count(MemoryTable.SHORT_TERM) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "importance,ttl",
        [
            ("temporary", timedelta(minutes=30)),
            ("low", timedelta(hours=4)),
            ("medium", timedelta(hours=24)),
            ("high", timedelta(days=7)),
            ("critical", timedelta(days=365)),
        ],
    )
    async def test_expiry_derived_from_importance(
        self, short_term, actor, short_term_input, importance, ttl
    ):
        """expires_at should be creation time plus the importance TTL."""
        memory_id = await short_term.store(actor, short_term_input(importance=importance))

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.expires_at - memory.created_at == ttl

    @pytest.mark.asyncio
    async def test_explicit_expiry_is_kept(self, short_term, actor, short_term_input):
        """An explicit expires_at overrides the importance TTL."""
        expires_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        memory_id = await short_term.store(actor, short_term_input(expires_at=expires_at))

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.expires_at == expires_at

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "importance,flagged",
        [
            ("critical", True),
            ("high", True),
            ("medium", False),
            ("low", False),
            ("temporary", False),
        ],
    )
    async def test_consolidation_flag_from_importance(
        self, short_term, actor, short_term_input, importance, flagged
    ):
        """Only critical and high memories are flagged at creation."""
        memory_id = await short_term.store(actor, short_term_input(importance=importance))

        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.should_consolidate is flagged

    @pytest.mark.asyncio
    async def test_store_requires_actor(self, short_term, short_term_input):
        """Writes without an actor are rejected."""
        with pytest.raises(AuthenticationRequired):
            await short_term.store(None, short_term_input())

    @pytest.mark.asyncio
    async def test_confidence_out_of_range_rejected(self, short_term, actor, short_term_input):
        """Confidence outside [0, 1] is a validation error."""
        with pytest.raises(MemoryValidationError):
            await short_term.store(actor, short_term_input(confidence=1.5))

    @pytest.mark.asyncio
    async def test_unknown_memory_type_rejected(self, short_term, actor, short_term_input):
        """Memory types outside the enumeration are a validation error."""
        with pytest.raises(MemoryValidationError):
            await short_term.store(actor, short_term_input(memory_type="gossip"))

    @pytest.mark.asyncio
    async def test_validation_error_is_value_error(self, short_term, actor, short_term_input):
        """MemoryValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            await short_term.store(actor, short_term_input(importance="urgent"))


class TestShortTermReads:
    """Tests for the session, recent and search read paths."""

    @pytest.mark.asyncio
    async def test_session_memories_scoped_to_session(
        self, short_term, actor, short_term_input
    ):
        """Only memories of the requested session are returned."""
        await short_term.store(actor, short_term_input(content="one"))
        await short_term.store(actor, short_term_input(content="two", session_id="other"))

        memories = await short_term.get_session_memories(actor, "session-1")
        assert [m.content for m in memories] == ["one"]

    @pytest.mark.asyncio
    async def test_session_memories_filter_by_type_and_importance(
        self, short_term, actor, short_term_input
    ):
        """Type and minimum-importance filters apply together, ties pass."""
        await short_term.store(actor, short_term_input(content="a", importance="high"))
        await short_term.store(actor, short_term_input(content="b", importance="medium"))
        await short_term.store(actor, short_term_input(content="c", importance="low"))
        await short_term.store(
            actor,
            short_term_input(content="d", importance="critical", memory_type="feedback"),
        )

        memories = await short_term.get_session_memories(
            actor,
            "session-1",
            memory_types=["user_preference"],
            min_importance="medium",
        )
        assert sorted(m.content for m in memories) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_session_memories_respect_limit(self, short_term, actor, short_term_input):
        for i in range(5):
            await short_term.store(actor, short_term_input(content=f"note {i}"))

        memories = await short_term.get_session_memories(actor, "session-1", limit=3)
        assert len(memories) == 3

    @pytest.mark.asyncio
    async def test_reads_without_actor_return_nothing(
        self, short_term, actor, short_term_input
    ):
        """Unauthenticated reads yield empty results."""
        await short_term.store(actor, short_term_input())

        assert await short_term.get_session_memories(None, "session-1") == []
        assert await short_term.get_recent_memories(None) == []
        assert await short_term.search_memories(None, "dark") == []
        assert await short_term.get_by_id(None, "anything") is None

    @pytest.mark.asyncio
    async def test_reads_isolated_between_users(
        self, short_term, actor, other_actor, short_term_input
    ):
        """Users never see each other's memories."""
        memory_id = await short_term.store(actor, short_term_input())

        assert await short_term.get_session_memories(other_actor, "session-1") == []
        assert await short_term.get_recent_memories(other_actor) == []
        assert await short_term.get_by_id(other_actor, memory_id) is None

    @pytest.mark.asyncio
    async def test_recent_memories_newest_first(
        self, short_term, actor, insert_short_term, now
    ):
        """Recent memories are sorted by creation time, newest first."""
        await insert_short_term("old", created_at=now - timedelta(hours=3))
        await insert_short_term("new", created_at=now - timedelta(minutes=5))
        await insert_short_term("middle", created_at=now - timedelta(hours=1))

        memories = await short_term.get_recent_memories(actor)
        assert [m.content for m in memories] == ["new", "middle", "old"]

    @pytest.mark.asyncio
    async def test_recent_memories_truncate_after_filtering(
        self, short_term, actor, insert_short_term, now
    ):
        """The limit applies after filtering, so older matches are not lost."""
        for i in range(3):
            await insert_short_term(
                f"recent low {i}",
                importance=Importance.LOW,
                created_at=now - timedelta(minutes=i),
            )
        await insert_short_term(
            "old but important",
            importance=Importance.HIGH,
            created_at=now - timedelta(days=2),
        )

        memories = await short_term.get_recent_memories(actor, min_importance="high", limit=1)
        assert [m.content for m in memories] == ["old but important"]

    @pytest.mark.asyncio
    async def test_recent_memories_union_of_types(
        self, short_term, actor, insert_short_term
    ):
        await insert_short_term("pref", memory_type=MemoryType.USER_PREFERENCE)
        await insert_short_term("task", memory_type=MemoryType.TASK_HISTORY)
        await insert_short_term("fact", memory_type=MemoryType.DOMAIN_KNOWLEDGE)

        memories = await short_term.get_recent_memories(
            actor, memory_types=[MemoryType.USER_PREFERENCE, "task_history"]
        )
        assert sorted(m.content for m in memories) == ["pref", "task"]

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(
        self, short_term, actor, short_term_input
    ):
        """Search matches content case-insensitively."""
        await short_term.store(actor, short_term_input(content="Prefers DARK mode"))
        await short_term.store(actor, short_term_input(content="Uses light theme on mobile"))

        results = await short_term.search_memories(actor, "dark")
        assert [m.content for m in results] == ["Prefers DARK mode"]

    @pytest.mark.asyncio
    async def test_search_scoped_to_session(self, short_term, actor, short_term_input):
        await short_term.store(actor, short_term_input(content="invoice due", session_id="a"))
        await short_term.store(actor, short_term_input(content="invoice paid", session_id="b"))

        results = await short_term.search_memories(actor, "invoice", session_id="b")
        assert [m.content for m in results] == ["invoice paid"]

    @pytest.mark.asyncio
    async def test_search_respects_limit(self, short_term, actor, short_term_input):
        for i in range(5):
            await short_term.store(actor, short_term_input(content=f"invoice {i}"))

        results = await short_term.search_memories(actor, "invoice", limit=2)
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_zero_limit_returns_nothing(self, short_term, actor, short_term_input):
        await short_term.store(actor, short_term_input(content="invoice 1"))

        assert await short_term.get_session_memories(actor, "session-1", limit=0) == []
        assert await short_term.get_recent_memories(actor, limit=0) == []
        assert await short_term.search_memories(actor, "invoice", limit=0) == []

    @pytest.mark.asyncio
    async def test_negative_limit_rejected(self, short_term, actor):
        with pytest.raises(MemoryValidationError):
            await short_term.get_recent_memories(actor, limit=-1)


class TestMarkForConsolidation:
    """Tests for marking short-term memories for promotion."""

    @pytest.mark.asyncio
    async def test_mark_sets_flag(self, short_term, actor, short_term_input):
        memory_id = await short_term.store(actor, short_term_input(importance="medium"))

        marked = await short_term.mark_for_consolidation(actor, [memory_id])

        assert marked == 1
        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.should_consolidate is True

    @pytest.mark.asyncio
    async def test_mark_is_idempotent(self, short_term, actor, short_term_input):
        memory_id = await short_term.store(actor, short_term_input(importance="medium"))

        await short_term.mark_for_consolidation(actor, [memory_id])
        marked = await short_term.mark_for_consolidation(actor, [memory_id])

        assert marked == 1
        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.should_consolidate is True

    @pytest.mark.asyncio
    async def test_mark_skips_other_users_records(
        self, short_term, actor, other_actor, short_term_input
    ):
        """Marking is restricted to the caller's own records."""
        memory_id = await short_term.store(actor, short_term_input(importance="low"))

        marked = await short_term.mark_for_consolidation(other_actor, [memory_id, "missing"])

        assert marked == 0
        memory = await short_term.get_by_id(actor, memory_id)
        assert memory.should_consolidate is False

    @pytest.mark.asyncio
    async def test_mark_requires_actor(self, short_term):
        with pytest.raises(AuthenticationRequired):
            await short_term.mark_for_consolidation(None, ["id"])


class TestExpiredCleanup:
    """Tests for the short-term expiry sweep."""

    @pytest.mark.asyncio
    async def test_expired_memory_is_deleted(
        self, short_term, insert_short_term, record_store, now
    ):
        await insert_short_term(
            "stale",
            importance=Importance.MEDIUM,
            should_consolidate=False,
            expires_at=now - timedelta(minutes=1),
        )
        await insert_short_term("fresh", expires_at=now + timedelta(hours=1))

        examined = await short_term.cleanup_expired_memories(now)

        assert examined == 1
        assert record_store.count(MemoryTable.SHORT_TERM) == 1

    @pytest.mark.asyncio
    async def test_pending_consolidation_survives_until_consolidated(
        self, short_term, bridge, actor, insert_short_term, record_store, now
    ):
        """A flagged, unconsolidated memory is kept past its expiry."""
        memory_id = await insert_short_term(
            "important but expired",
            importance=Importance.HIGH,
            should_consolidate=True,
            expires_at=now - timedelta(days=1),
        )

        stats = await short_term.sweep_expired(now)
        assert stats == {"processed": 1, "removed": 0, "retained": 1, "errors": 0}
        assert await record_store.get(MemoryTable.SHORT_TERM, memory_id) is not None

        await bridge.stamp_consolidated(actor, [memory_id], now)
        stats = await short_term.sweep_expired(now)

        assert stats["removed"] == 1
        assert await record_store.get(MemoryTable.SHORT_TERM, memory_id) is None

    @pytest.mark.asyncio
    async def test_sweep_continues_after_record_failure(
        self, short_term, insert_short_term, record_store, now, monkeypatch
    ):
        """A failure on one record is counted and the sweep goes on."""
        bad_id = await insert_short_term(
            "bad", should_consolidate=False, expires_at=now - timedelta(hours=1)
        )
        await insert_short_term(
            "good", should_consolidate=False, expires_at=now - timedelta(hours=1)
        )
        original_delete = record_store.delete

        async def flaky_delete(table, record_id):
            if record_id == bad_id:
                raise RuntimeError("storage unavailable")
            return await original_delete(table, record_id)

        monkeypatch.setattr(record_store, "delete", flaky_delete)

        stats = await short_term.sweep_expired(now)

        assert stats["processed"] == 2
        assert stats["removed"] == 1
        assert stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_expired(self, short_term, now):
        stats = await short_term.sweep_expired(now)
        assert stats == {"processed": 0, "removed": 0, "retained": 0, "errors": 0}

    @pytest.mark.asyncio
    async def test_expiry_checked_per_record(
        self, short_term, insert_short_term, record_store, now, monkeypatch
    ):
        """Stores without range filters still only lose expired records."""
        await insert_short_term(
            "stale", should_consolidate=False, expires_at=now - timedelta(minutes=1)
        )
        fresh_id = await insert_short_term(
            "fresh", should_consolidate=False, expires_at=now + timedelta(hours=1)
        )
        original_query = record_store.query

        async def query_without_ranges(table, where=None, lt=None, **kwargs):
            return await original_query(table, where=where, **kwargs)

        monkeypatch.setattr(record_store, "query", query_without_ranges)

        stats = await short_term.sweep_expired(now)

        assert stats["processed"] == 1
        assert stats["removed"] == 1
        assert await record_store.get(MemoryTable.SHORT_TERM, fresh_id) is not None
