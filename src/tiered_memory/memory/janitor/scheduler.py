# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Janitor scheduling logic.

Answers whether a maintenance run is due. Triggering runs is the job of an
external scheduler (cron, a task queue, ...).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from tiered_memory.config import MemoryConfig


class JanitorScheduler:
    """Decides when the janitor should run.

    Attributes:
        schedule_interval_hours: Hours between janitor runs.

    Example:
        >>> scheduler = JanitorScheduler.from_config(config)
        >>> if scheduler.should_run(last_run):
        ...     await runner.run_all()
    """

    def __init__(self, schedule_interval_hours: int = 24):
        """Initialize the scheduler.

        Args:
            schedule_interval_hours: Hours between runs (default 24).
        """
        self.schedule_interval_hours = schedule_interval_hours

    @classmethod
    def from_config(cls, config: MemoryConfig) -> "JanitorScheduler":
        """Create a scheduler using the configured interval."""
        return cls(schedule_interval_hours=config.janitor_interval_hours)

    @property
    def interval(self) -> timedelta:
        return timedelta(hours=self.schedule_interval_hours)

    def should_run(
        self, last_run: Optional[datetime] = None, now: Optional[datetime] = None
    ) -> bool:
        """Determine if the janitor should run now.

        Args:
            last_run: Timestamp of the last janitor run (None: never ran).
            now: Reference time (default: current UTC time).

        Returns:
            True if a run is due.
        """
        if last_run is None:
            return True

        if now is None:
            now = datetime.now(timezone.utc)

        # Ensure timezone aware comparison
        if last_run.tzinfo is None:
            last_run = last_run.replace(tzinfo=timezone.utc)

        return now - last_run >= self.interval

    def get_next_run(
        self, last_run: Optional[datetime] = None, now: Optional[datetime] = None
    ) -> datetime:
        """Calculate the next scheduled run time.

        Overdue runs are scheduled for now.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        if last_run is None:
            return now

        if last_run.tzinfo is None:
            last_run = last_run.replace(tzinfo=timezone.utc)

        return max(last_run + self.interval, now)
