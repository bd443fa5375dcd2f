# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Tests for memory metrics and usage analysis.
"""

from datetime import timedelta

import pytest

from tiered_memory.exceptions import AuthenticationRequired
from tiered_memory.memory.observability import (
    METRIC_PREFIX,
    LatencyStats,
    MemoryMetrics,
    analyze_memory_usage,
)
from tiered_memory.memory.providers import LongTermMemoryProvider, ShortTermMemoryProvider
from tiered_memory.memory.schemas import Importance, MemoryType


class TestLatencyStats:
    """Tests for latency statistics."""

    def test_empty_stats(self):
        stats = LatencyStats()
        assert stats.count == 0
        assert stats.avg_ms == 0.0

    def test_record_updates_min_max_avg(self):
        stats = LatencyStats()
        for value in (10.0, 30.0, 20.0):
            stats.record(value)

        assert stats.count == 3
        assert stats.min_ms == 10.0
        assert stats.max_ms == 30.0
        assert stats.avg_ms == pytest.approx(20.0)

    def test_p95_from_recent_samples(self):
        stats = LatencyStats()
        for value in range(1, 101):
            stats.record(float(value))

        assert stats.p95_ms == 96.0
        assert stats.as_dict()["count"] == 100


class TestMemoryMetrics:
    """Tests for the metrics collector."""

    @pytest.fixture
    def metrics(self):
        return MemoryMetrics()

    def test_record_store_counts_merges(self, metrics):
        metrics.record_store("long_term", memory_type="feedback")
        metrics.record_store("long_term", memory_type="feedback", merged=True)

        assert metrics.get_counter("long_term_store_total") == 2
        assert metrics.get_counter("long_term_store_created") == 1
        assert metrics.get_counter("long_term_store_merged") == 1
        stats = metrics.get_stats()
        assert stats["labels"]["long_term_store_by_type"] == {"feedback": 2}

    def test_record_search(self, metrics):
        metrics.record_search("short_term", result_count=4)
        metrics.record_search("short_term", result_count=1)

        assert metrics.get_counter("short_term_search_total") == 2
        assert metrics.get_counter("short_term_search_results") == 5

    def test_record_sweep(self, metrics):
        metrics.record_sweep("decay", processed=10, removed=2, errors=1)

        assert metrics.get_counter("sweep_decay_runs") == 1
        assert metrics.get_counter("sweep_decay_processed") == 10
        assert metrics.get_counter("sweep_decay_removed") == 2
        assert metrics.get_counter("sweep_decay_errors") == 1

    def test_timed_records_latency(self, metrics):
        with metrics.timed("long_term.search"):
            pass

        latency = metrics.get_stats()["latencies"]["long_term.search"]
        assert latency["count"] == 1
        assert latency["min_ms"] >= 0.0

    def test_timed_records_latency_on_error(self, metrics):
        with pytest.raises(RuntimeError):
            with metrics.timed("failing"):
                raise RuntimeError("boom")

        assert metrics.get_stats()["latencies"]["failing"]["count"] == 1

    def test_increment_counter_with_labels(self, metrics):
        metrics.increment_counter("reads", labels={"tier": "long_term"})
        metrics.increment_counter("reads", value=2, labels={"tier": "short_term"})

        assert metrics.get_counter("reads") == 3
        assert metrics.get_stats()["labels"]["reads_tier"] == {"long_term": 1, "short_term": 2}

    def test_unknown_counter_is_zero(self, metrics):
        assert metrics.get_counter("never_incremented") == 0

    def test_stats_carry_prefix_and_reset(self, metrics):
        metrics.record_search("long_term")
        assert metrics.get_stats()["prefix"] == METRIC_PREFIX

        metrics.reset()

        stats = metrics.get_stats()
        assert stats["counters"] == {}
        assert stats["latencies"] == {}


class TestProviderMetrics:
    """Providers record metrics when given a collector."""

    @pytest.mark.asyncio
    async def test_short_term_provider_records_writes_and_reads(
        self, record_store, actor, short_term_input
    ):
        metrics = MemoryMetrics()
        provider = ShortTermMemoryProvider(record_store, metrics=metrics)

        await provider.store(actor, short_term_input())
        await provider.store(actor, short_term_input())
        await provider.get_session_memories(actor, "session-1")

        assert metrics.get_counter("short_term_store_created") == 1
        assert metrics.get_counter("short_term_store_merged") == 1
        assert metrics.get_counter("short_term_search_results") == 1

    @pytest.mark.asyncio
    async def test_searches_are_timed(self, record_store, actor, short_term_input):
        metrics = MemoryMetrics()
        short_term = ShortTermMemoryProvider(record_store, metrics=metrics)
        long_term = LongTermMemoryProvider(record_store, metrics=metrics)
        await short_term.store(actor, short_term_input())

        await short_term.search_memories(actor, "email")
        await long_term.search_memories(actor, "email")

        latencies = metrics.get_stats()["latencies"]
        assert latencies["short_term.search"]["count"] == 1
        assert latencies["long_term.search"]["count"] == 1

    @pytest.mark.asyncio
    async def test_long_term_provider_records_decay(
        self, record_store, insert_long_term, now
    ):
        metrics = MemoryMetrics()
        provider = LongTermMemoryProvider(record_store, metrics=metrics)
        await insert_long_term(
            importance=Importance.LOW,
            strength=0.05,
            decay_rate=0.02,
            last_accessed_at=now - timedelta(days=3),
        )

        await provider.apply_decay(now)

        assert metrics.get_counter("sweep_decay_runs") == 1
        assert metrics.get_counter("sweep_decay_removed") == 1


class TestAnalyzeMemoryUsage:
    """Tests for per-user usage analysis."""

    @pytest.mark.asyncio
    async def test_summary_and_breakdown(
        self, record_store, actor, other_actor, insert_short_term, insert_long_term, now
    ):
        await insert_short_term("pref", memory_type=MemoryType.USER_PREFERENCE)
        await insert_short_term("task", memory_type=MemoryType.TASK_HISTORY, should_consolidate=False)
        await insert_long_term("fact", strength=0.9)
        await insert_long_term("old fact", strength=0.9, created_at=now - timedelta(days=30))
        await insert_long_term("not mine", owner=other_actor)

        usage = await analyze_memory_usage(record_store, actor, now)

        assert usage["summary"] == {
            "total_short_term_memories": 2,
            "total_long_term_memories": 2,
            "pending_consolidation": 1,
        }
        assert usage["by_type"]["short_term"] == {"user_preference": 1, "task_history": 1}
        assert usage["by_type"]["long_term"] == {"domain_knowledge": 2}
        assert usage["trends"]["recent_short_term_memories"] == 2
        assert usage["trends"]["recent_long_term_memories"] == 1
        assert usage["recommendations"] == []

    @pytest.mark.asyncio
    async def test_trends_count_last_week(
        self, record_store, actor, insert_short_term, insert_long_term, now
    ):
        yesterday = now - timedelta(days=1)
        await insert_short_term("recent", created_at=yesterday)
        await insert_long_term("recent fact", created_at=yesterday)
        await insert_long_term("old fact", created_at=now - timedelta(days=8))

        usage = await analyze_memory_usage(record_store, actor, now)

        assert usage["trends"]["recent_short_term_memories"] == 1
        assert usage["trends"]["recent_long_term_memories"] == 1
        assert usage["trends"]["avg_memories_per_day"] == pytest.approx(2 / 7)

    @pytest.mark.asyncio
    async def test_recommendations(self, record_store, actor, insert_short_term, insert_long_term):
        for i in range(21):
            await insert_short_term(f"pending {i}")
        await insert_long_term("weak", strength=0.1)

        usage = await analyze_memory_usage(record_store, actor)

        assert usage["recommendations"] == [
            "Consider consolidating 21 pending memories",
            "High ratio of short-term memories - consider more frequent consolidation",
            "1 weak long-term memories could be cleaned up",
        ]

    @pytest.mark.asyncio
    async def test_requires_actor(self, record_store):
        with pytest.raises(AuthenticationRequired):
            await analyze_memory_usage(record_store, None)
