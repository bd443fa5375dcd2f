# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Metrics and usage analysis for the memory subsystem."""

from tiered_memory.memory.observability.metrics import (
    METRIC_PREFIX,
    LatencyStats,
    MemoryMetrics,
)
from tiered_memory.memory.observability.usage import analyze_memory_usage

__all__ = [
    "METRIC_PREFIX",
    "LatencyStats",
    "MemoryMetrics",
    "analyze_memory_usage",
]
