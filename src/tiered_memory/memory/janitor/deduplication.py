# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Short-term memory deduplication.

The short-term write path merges identical writes, but it is a
read-then-write sequence: concurrent writers can still both insert. This
task removes such duplicates, keeping the newest record of each
(user, enterprise, session, type, content) group. Records still awaiting
consolidation are never removed; the newest of them survives its group.
"""

import logging
from typing import Any

from tiered_memory.memory.protocols import MemoryRecordStore, MemoryTable
from tiered_memory.memory.schemas import ShortTermMemory

logger = logging.getLogger(__name__)


def duplicate_key(memory: ShortTermMemory) -> tuple[str, str, str, str, str]:
    """Identity of a short-term memory for deduplication."""
    return (
        memory.user_id,
        memory.enterprise_id,
        memory.session_id,
        str(memory.memory_type),
        memory.content,
    )


class ShortTermDeduplicator:
    """Removes duplicate short-term memories.

    Example:
        >>> dedup = ShortTermDeduplicator()
        >>> result = await dedup.run(store)
        >>> print(f"Removed {result['removed']} duplicates")
    """

    def find_duplicates(self, memories: list[ShortTermMemory]) -> list[ShortTermMemory]:
        """Find the records to remove.

        Args:
            memories: Short-term records to check.

        Returns:
            Every record of a duplicate group except its survivor, skipping
            records that are pending consolidation.
        """
        groups: dict[tuple, list[ShortTermMemory]] = {}
        for memory in memories:
            groups.setdefault(duplicate_key(memory), []).append(memory)

        to_remove = []
        for group in groups.values():
            if len(group) < 2:
                continue
            group.sort(key=lambda m: m.created_at, reverse=True)
            pending = [m for m in group if m.is_pending_consolidation]
            survivor = pending[0] if pending else group[0]
            to_remove.extend(
                m for m in group if m is not survivor and not m.is_pending_consolidation
            )
        return to_remove

    async def run(self, store: MemoryRecordStore, dry_run: bool = False) -> dict[str, Any]:
        """Run deduplication over the short-term table.

        Args:
            store: Record store holding the short-term table.
            dry_run: If True, only report what would be removed.

        Returns:
            Statistics about the deduplication run.
        """
        memories = await store.query(MemoryTable.SHORT_TERM)
        duplicates = self.find_duplicates(memories)

        if dry_run:
            return {
                "processed": len(memories),
                "dry_run": True,
                "duplicates_found": len(duplicates),
                "would_remove": [
                    {"id": m.id, "content": m.content[:50]} for m in duplicates
                ],
            }

        removed = 0
        errors = 0
        for memory in duplicates:
            try:
                if await store.delete(MemoryTable.SHORT_TERM, memory.id):
                    removed += 1
            except Exception:
                errors += 1
                logger.exception(f"Failed to remove duplicate memory {memory.id}")

        if duplicates:
            logger.info(f"Deduplication removed {removed} of {len(duplicates)} duplicates")

        return {
            "processed": len(memories),
            "duplicates_found": len(duplicates),
            "removed": removed,
            "errors": errors,
        }
