# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Storage and similarity protocols for the memory subsystem.

The memory stores only need point lookups by id, equality/range queries
over record fields, patching, and (bulk) deletion. Any backend offering
those can implement MemoryRecordStore; InMemoryRecordStore is the local
implementation.
"""

from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

# Protocol version for compatibility tracking
MEMORY_RECORD_STORE_VERSION = "1.0.0"


class MemoryTable(str, Enum):
    """Logical tables held by a record store."""

    SHORT_TERM = "short_term_memory"
    LONG_TERM = "long_term_memory"
    ASSOCIATIONS = "memory_associations"
    CONSOLIDATION_JOBS = "memory_consolidation_jobs"

    def __str__(self) -> str:
        """Return the string value for easy serialization."""
        return self.value


@runtime_checkable
class MemoryRecordStore(Protocol):
    """Protocol for record storage backends.

    The store is expected to serialize conflicting writes to the same
    record. No multi-record transactions are assumed.

    Methods:
        insert: Insert a record and return its id.
        get: Get a record by id.
        patch: Update fields of a record.
        delete: Delete a record.
        delete_many: Delete several records.
        query: Equality/range query with ordering and limit.
    """

    async def insert(self, table: MemoryTable, record: BaseModel) -> str:
        """Insert a record.

        Args:
            table: Target table.
            record: The record. Its ``id`` is assigned by the store if unset.

        Returns:
            The id of the stored record.
        """
        ...

    async def get(self, table: MemoryTable, record_id: str) -> Optional[BaseModel]:
        """Get a record by id, or None if it does not exist."""
        ...

    async def patch(
        self, table: MemoryTable, record_id: str, updates: dict[str, Any]
    ) -> Optional[BaseModel]:
        """Apply field updates to a record.

        Returns:
            The updated record, or None if it does not exist.
        """
        ...

    async def delete(self, table: MemoryTable, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        ...

    async def delete_many(self, table: MemoryTable, record_ids: list[str]) -> int:
        """Delete several records. Returns the number actually deleted."""
        ...

    async def query(
        self,
        table: MemoryTable,
        where: Optional[dict[str, Any]] = None,
        lt: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[BaseModel]:
        """Query records.

        Args:
            table: Table to query.
            where: Field equality constraints (all must hold).
            lt: Strict upper bounds, field < value (all must hold; records
                whose field is None never match).
            order_by: Field to sort by.
            descending: Sort direction.
            limit: Maximum number of records returned.

        Returns:
            Matching records.
        """
        ...


@runtime_checkable
class SimilarityScorer(Protocol):
    """Scores how alike two pieces of memory content are, in [0, 1].

    The long-term write path uses lexical similarity by default; an
    embedding-backed scorer can be supplied instead.
    """

    def __call__(self, a: str, b: str) -> float:
        ...
