# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Expiration-based short-term memory cleanup.

Removes short-term memories that have passed their expiry, except those
still awaiting consolidation.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from tiered_memory.memory.providers import ShortTermMemoryProvider


class ExpirationCleaner:
    """Cleans up expired short-term memories.

    Example:
        >>> cleaner = ExpirationCleaner()
        >>> result = await cleaner.run(short_term)
        >>> print(f"Removed {result['removed']} expired memories")
    """

    async def run(
        self,
        provider: "ShortTermMemoryProvider",
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        """Run the expiry sweep.

        Args:
            provider: Short-term memory provider.
            now: Reference time (default: current UTC time).

        Returns:
            Statistics: processed, removed, retained, errors.
        """
        return await provider.sweep_expired(now)
