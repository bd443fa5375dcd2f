# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Memory subsystem configuration.

This module provides:
- MemoryConfig dataclass with the tunable thresholds and limits
- load_config() to parse the ``memory:`` section of a YAML file

The importance lookup tables (TTL, initial strength, decay rate) are fixed
and live in ``tiered_memory.memory.lifecycle.policies``; only the knobs
around them are configurable.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

DEFAULT_MERGE_SIMILARITY_THRESHOLD = 0.8
DEFAULT_MERGE_CANDIDATE_WINDOW = 50
DEFAULT_REINFORCEMENT_DELTA = 0.1
DEFAULT_VERIFICATION_BOOST = 0.2
DEFAULT_DECAY_IDLE_HOURS = 24
DEFAULT_READ_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 20
DEFAULT_RELATED_LIMIT = 10
DEFAULT_CONSOLIDATION_MIN_CONFIDENCE = 0.5
DEFAULT_JANITOR_INTERVAL_HOURS = 24

# Hard limit on any single read, cannot be raised from YAML
MAX_READ_LIMIT_HARD_LIMIT = 10000


@dataclass
class MemoryConfig:
    """Configuration for the short-term and long-term memory stores.

    Attributes:
        merge_similarity_threshold: Similarity above which a long-term write
            reinforces an existing memory instead of creating one.
        merge_candidate_window: Number of recent same-type memories compared
            on a long-term write.
        reinforcement_delta: Strength added by a merge or default reinforcement.
        verification_boost: Strength added when a memory is verified.
        decay_idle_hours: Memories accessed more recently than this are not
            touched by the decay sweep.
        read_limit: Default limit for list reads.
        search_limit: Default limit for searches.
        related_limit: Default limit for related-memory expansion.
        consolidation_min_confidence: Consolidation groups below this
            confidence are not promoted.
        janitor_interval_hours: Hours between janitor runs.
    """

    merge_similarity_threshold: float = DEFAULT_MERGE_SIMILARITY_THRESHOLD
    merge_candidate_window: int = DEFAULT_MERGE_CANDIDATE_WINDOW
    reinforcement_delta: float = DEFAULT_REINFORCEMENT_DELTA
    verification_boost: float = DEFAULT_VERIFICATION_BOOST
    decay_idle_hours: int = DEFAULT_DECAY_IDLE_HOURS
    read_limit: int = DEFAULT_READ_LIMIT
    search_limit: int = DEFAULT_SEARCH_LIMIT
    related_limit: int = DEFAULT_RELATED_LIMIT
    consolidation_min_confidence: float = DEFAULT_CONSOLIDATION_MIN_CONFIDENCE
    janitor_interval_hours: int = DEFAULT_JANITOR_INTERVAL_HOURS


_UNIT_FIELDS = (
    "merge_similarity_threshold",
    "reinforcement_delta",
    "verification_boost",
    "consolidation_min_confidence",
)

_COUNT_FIELDS = (
    "merge_candidate_window",
    "decay_idle_hours",
    "read_limit",
    "search_limit",
    "related_limit",
    "janitor_interval_hours",
)


def load_config(config_path: Optional[Union[str, Path]] = None) -> MemoryConfig:
    """Load memory configuration from a YAML file.

    Expected layout::

        memory:
          merge_similarity_threshold: 0.8
          read_limit: 50

    Args:
        config_path: Path to the YAML file. None returns defaults.

    Returns:
        MemoryConfig with settings from the file or defaults
    """
    if config_path is None:
        return MemoryConfig()

    path = Path(config_path)
    if not path.exists():
        return MemoryConfig()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, IOError):
        return MemoryConfig()

    if not isinstance(data, dict):
        return MemoryConfig()

    section = data.get("memory", {})
    if not isinstance(section, dict):
        return MemoryConfig()

    values: dict[str, Any] = {}

    for name in _UNIT_FIELDS:
        raw = section.get(name)
        # bool is an int subclass, reject it explicitly
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            values[name] = max(0.0, min(float(raw), 1.0))

    for name in _COUNT_FIELDS:
        raw = section.get(name)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            values[name] = max(1, min(int(raw), MAX_READ_LIMIT_HARD_LIMIT))

    return MemoryConfig(**values)
