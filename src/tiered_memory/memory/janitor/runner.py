# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Janitor runner for orchestrating maintenance sweeps.

Runs short-term expiration, long-term decay, short-term deduplication and
consolidation in sequence. Triggering the runner is left to an external
scheduler; JanitorScheduler only answers whether a run is due.
"""

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from tiered_memory.memory.consolidation import MemoryConsolidator
from tiered_memory.memory.janitor.decay import DecaySweeper
from tiered_memory.memory.janitor.deduplication import ShortTermDeduplicator
from tiered_memory.memory.janitor.expiration import ExpirationCleaner
from tiered_memory.memory.observability.metrics import MemoryMetrics

if TYPE_CHECKING:
    from tiered_memory.memory.providers import LongTermMemoryProvider, ShortTermMemoryProvider

logger = logging.getLogger(__name__)


class JanitorRunner:
    """Orchestrates all maintenance tasks.

    A task that raises is logged and reported under ``errors``; the
    remaining tasks still run.

    Attributes:
        short_term: Short-term memory provider.
        long_term: Long-term memory provider.
        expiration_cleaner: Expiry sweep handler.
        decay_sweeper: Decay sweep handler.
        deduplicator: Short-term deduplication handler.
        consolidator: Consolidation pipeline.

    Example:
        >>> runner = JanitorRunner(short_term, long_term)
        >>> result = await runner.run_all()
        >>> print(f"Removed {result['total_removed']} memories")
    """

    def __init__(
        self,
        short_term: "ShortTermMemoryProvider",
        long_term: "LongTermMemoryProvider",
        expiration_cleaner: Optional[ExpirationCleaner] = None,
        decay_sweeper: Optional[DecaySweeper] = None,
        deduplicator: Optional[ShortTermDeduplicator] = None,
        consolidator: Optional[MemoryConsolidator] = None,
        metrics: Optional[MemoryMetrics] = None,
    ):
        """Initialize the janitor runner.

        Args:
            short_term: Short-term memory provider.
            long_term: Long-term memory provider.
            expiration_cleaner: Custom cleaner (creates default if not provided).
            decay_sweeper: Custom sweeper (creates default if not provided).
            deduplicator: Custom deduplicator (creates default if not provided).
            consolidator: Custom consolidator (creates default if not provided).
            metrics: Metrics collector, or None to disable metrics.
        """
        self.short_term = short_term
        self.long_term = long_term
        self.expiration_cleaner = expiration_cleaner or ExpirationCleaner()
        self.decay_sweeper = decay_sweeper or DecaySweeper()
        self.deduplicator = deduplicator or ShortTermDeduplicator()
        self.consolidator = consolidator or MemoryConsolidator(short_term, long_term)
        self.metrics = metrics

    async def run_expiration_cleanup(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """Run the short-term expiry sweep."""
        return await self.expiration_cleaner.run(self.short_term, now)

    async def run_decay(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """Run the long-term decay sweep."""
        return await self.decay_sweeper.run(self.long_term, now)

    async def run_deduplication(self) -> dict[str, Any]:
        """Run short-term deduplication."""
        result = await self.deduplicator.run(self.short_term.record_store)
        if self.metrics:
            self.metrics.record_sweep(
                "dedup",
                processed=result["processed"],
                removed=result["removed"],
                errors=result["errors"],
            )
        return result

    async def run_consolidation(self) -> dict[str, Any]:
        """Consolidate pending memories for every owner."""
        return await self.consolidator.consolidate_all()

    async def _run_task(
        self,
        name: str,
        task: Callable[[], Awaitable[dict[str, Any]]],
        errors: list[str],
    ) -> dict[str, Any]:
        try:
            return await task()
        except Exception as e:
            logger.exception(f"Janitor task '{name}' failed")
            errors.append(f"{name}: {e}")
            return {}

    async def run_all(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """Run all maintenance tasks.

        Args:
            now: Reference time for the expiry and decay sweeps
                (default: current UTC time).

        Returns:
            Combined statistics from all tasks.
        """
        start_time = time.perf_counter()
        errors: list[str] = []

        expiration_result = await self._run_task(
            "expiration", lambda: self.run_expiration_cleanup(now), errors
        )
        decay_result = await self._run_task("decay", lambda: self.run_decay(now), errors)
        dedup_result = await self._run_task("deduplication", self.run_deduplication, errors)
        consolidation_result = await self._run_task(
            "consolidation", self.run_consolidation, errors
        )

        duration_ms = (time.perf_counter() - start_time) * 1000

        total_processed = (
            expiration_result.get("processed", 0)
            + decay_result.get("processed", 0)
            + dedup_result.get("processed", 0)
            + consolidation_result.get("processed", 0)
        )
        total_removed = (
            expiration_result.get("removed", 0)
            + decay_result.get("removed", 0)
            + dedup_result.get("removed", 0)
        )

        logger.info(
            f"Janitor run finished in {duration_ms:.1f}ms: "
            f"{total_processed} processed, {total_removed} removed"
        )

        return {
            "expiration": expiration_result,
            "decay": decay_result,
            "deduplication": dedup_result,
            "consolidation": consolidation_result,
            "total_processed": total_processed,
            "total_removed": total_removed,
            "errors": errors,
            "duration_ms": duration_ms,
        }
