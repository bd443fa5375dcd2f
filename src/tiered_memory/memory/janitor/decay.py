# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Strength decay sweep for long-term memories."""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from tiered_memory.memory.providers import LongTermMemoryProvider


class DecaySweeper:
    """Applies decay to idle long-term memories.

    Memories decayed to zero strength are deleted; critical and verified
    memories are never touched.

    Example:
        >>> sweeper = DecaySweeper()
        >>> result = await sweeper.run(long_term)
        >>> print(f"Deleted {result['deleted']} dead memories")
    """

    async def run(
        self,
        provider: "LongTermMemoryProvider",
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Run the decay sweep.

        Args:
            provider: Long-term memory provider.
            now: Reference time (default: current UTC time).

        Returns:
            Statistics: processed, decayed, deleted, skipped, errors, and
            removed (alias of deleted).
        """
        result = await provider.apply_decay(now)
        result["removed"] = result["deleted"]
        return result
