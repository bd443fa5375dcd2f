# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Memory metrics for observability.

OpenTelemetry-style counters and latency statistics for the short-term and
long-term stores and the maintenance sweeps. Counter names are prefixed
with the tier or sweep, e.g. ``long_term_store_merged`` or
``sweep_decay_removed``; exporters add ``METRIC_PREFIX`` in front.
"""

import threading
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

METRIC_PREFIX: str = "memory"

# Samples kept per operation for percentile estimates
LATENCY_WINDOW = 1000


@dataclass
class LatencyStats:
    """Running latency figures for one operation.

    ``count``, ``min_ms`` and ``max_ms`` cover every sample; the p95 is
    estimated from the most recent ``LATENCY_WINDOW`` samples.
    """

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0
    recent: deque = field(default_factory=lambda: deque(maxlen=LATENCY_WINDOW))

    def record(self, latency_ms: float) -> None:
        if self.count == 0 or latency_ms < self.min_ms:
            self.min_ms = latency_ms
        if latency_ms > self.max_ms:
            self.max_ms = latency_ms
        self.count += 1
        self.total_ms += latency_ms
        self.recent.append(latency_ms)

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    @property
    def p95_ms(self) -> float:
        if not self.recent:
            return 0.0
        ordered = sorted(self.recent)
        return ordered[min(len(ordered) - 1, int(len(ordered) * 0.95))]

    def as_dict(self) -> dict[str, float]:
        return {
            "count": self.count,
            "avg_ms": self.avg_ms,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "p95_ms": self.p95_ms,
        }


class MemoryMetrics:
    """Counters, labelled breakdowns and latencies for memory operations.

    Safe to share between providers and the janitor; updates run under a lock.

    Example:
        >>> metrics = MemoryMetrics()
        >>> provider = LongTermMemoryProvider(store, metrics=metrics)
        >>> metrics.get_counter("long_term_store_merged")
        0
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: dict[str, int] = defaultdict(int)
        self._latencies: dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._labels: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        labels: Optional[dict[str, str]] = None,
    ) -> None:
        """Add value to a counter.

        Each label adds a breakdown keyed ``<name>_<label>``.
        """
        with self._lock:
            self._counters[name] += value
            for label, label_value in (labels or {}).items():
                self._labels[f"{name}_{label}"][label_value] += value

    def record_store(
        self,
        tier: str,
        memory_type: str = "unknown",
        merged: bool = False,
    ) -> None:
        """Count a write to a tier.

        Args:
            tier: "short_term" or "long_term".
            memory_type: Type of memory written.
            merged: True when the write updated an existing record.
        """
        outcome = "merged" if merged else "created"
        with self._lock:
            self._counters[f"{tier}_store_total"] += 1
            self._counters[f"{tier}_store_{outcome}"] += 1
            self._labels[f"{tier}_store_by_type"][memory_type] += 1

    def record_search(self, tier: str, result_count: int = 0) -> None:
        """Count a search or list read and the records it returned."""
        with self._lock:
            self._counters[f"{tier}_search_total"] += 1
            self._counters[f"{tier}_search_results"] += result_count

    def record_sweep(
        self,
        name: str,
        processed: int = 0,
        removed: int = 0,
        errors: int = 0,
    ) -> None:
        """Count one run of a maintenance sweep.

        Args:
            name: Sweep name (expiration, decay, dedup).
            processed: Records examined.
            removed: Records deleted.
            errors: Records that failed processing.
        """
        with self._lock:
            self._counters[f"sweep_{name}_runs"] += 1
            for suffix, value in (
                ("processed", processed),
                ("removed", removed),
                ("errors", errors),
            ):
                self._counters[f"sweep_{name}_{suffix}"] += value

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        """Record the latency of the enclosed block, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                self._latencies[operation].record(elapsed_ms)

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of every counter, breakdown and latency."""
        with self._lock:
            return {
                "prefix": METRIC_PREFIX,
                "counters": dict(self._counters),
                "latencies": {op: s.as_dict() for op, s in self._latencies.items()},
                "labels": {name: dict(values) for name, values in self._labels.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._latencies.clear()
            self._labels.clear()
