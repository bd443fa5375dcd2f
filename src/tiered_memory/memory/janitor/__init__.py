# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Maintenance sweeps: expiration, decay, deduplication, consolidation."""

from tiered_memory.memory.janitor.decay import DecaySweeper
from tiered_memory.memory.janitor.deduplication import ShortTermDeduplicator
from tiered_memory.memory.janitor.expiration import ExpirationCleaner
from tiered_memory.memory.janitor.runner import JanitorRunner
from tiered_memory.memory.janitor.scheduler import JanitorScheduler

__all__ = [
    "DecaySweeper",
    "ExpirationCleaner",
    "JanitorRunner",
    "JanitorScheduler",
    "ShortTermDeduplicator",
]
