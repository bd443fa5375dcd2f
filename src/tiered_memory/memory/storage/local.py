# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""Local in-memory implementation of MemoryRecordStore.

Suitable for:
- Development and testing
- Single-process deployments where memory is allowed to be ephemeral

Data is lost on restart.
"""

import threading
import uuid
from typing import Any, Optional

from pydantic import BaseModel

from tiered_memory.memory.protocols import MemoryTable


class InMemoryRecordStore:
    """Dict-backed record store.

    Thread-safe: all operations run under an RLock, so writes to the same
    record are serialized. Records are copied on the way in and out to
    prevent external mutation.

    Example:
        >>> store = InMemoryRecordStore()
        >>> record_id = await store.insert(MemoryTable.LONG_TERM, memory)
        >>> await store.patch(MemoryTable.LONG_TERM, record_id, {"strength": 0.9})
    """

    def __init__(self):
        """Initialize empty tables."""
        self._tables: dict[MemoryTable, dict[str, BaseModel]] = {
            table: {} for table in MemoryTable
        }
        self._rlock = threading.RLock()

    async def insert(self, table: MemoryTable, record: BaseModel) -> str:
        """Insert a record, assigning an id if it has none.

        Args:
            table: Target table.
            record: Record to store.

        Returns:
            The record id.
        """
        record_id = getattr(record, "id", None) or str(uuid.uuid4())
        stored = record.model_copy(update={"id": record_id}, deep=True)
        with self._rlock:
            self._tables[table][record_id] = stored
        return record_id

    async def get(self, table: MemoryTable, record_id: str) -> Optional[BaseModel]:
        """Get a copy of a record by id."""
        with self._rlock:
            record = self._tables[table].get(record_id)
            if record is None:
                return None
            return record.model_copy(deep=True)

    async def patch(
        self, table: MemoryTable, record_id: str, updates: dict[str, Any]
    ) -> Optional[BaseModel]:
        """Apply updates to a record.

        Args:
            table: Table holding the record.
            record_id: Id of the record.
            updates: Field name to new value.

        Returns:
            Copy of the updated record, or None if not found.
        """
        with self._rlock:
            record = self._tables[table].get(record_id)
            if record is None:
                return None
            updated = record.model_copy(update=updates, deep=True)
            self._tables[table][record_id] = updated
            return updated.model_copy(deep=True)

    async def delete(self, table: MemoryTable, record_id: str) -> bool:
        """Delete a record by id."""
        with self._rlock:
            return self._tables[table].pop(record_id, None) is not None

    async def delete_many(self, table: MemoryTable, record_ids: list[str]) -> int:
        """Delete several records, returning how many existed."""
        deleted = 0
        with self._rlock:
            for record_id in record_ids:
                if self._tables[table].pop(record_id, None) is not None:
                    deleted += 1
        return deleted

    async def query(
        self,
        table: MemoryTable,
        where: Optional[dict[str, Any]] = None,
        lt: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[BaseModel]:
        """Query records by equality and strict upper bounds.

        Args:
            table: Table to query.
            where: Field equality constraints.
            lt: Field < value constraints; None-valued fields never match.
            order_by: Field to sort by.
            descending: Sort direction.
            limit: Maximum number of results.

        Returns:
            Copies of matching records.
        """
        where = where or {}
        lt = lt or {}

        with self._rlock:
            candidates = list(self._tables[table].values())

        results = []
        for record in candidates:
            if any(getattr(record, key, None) != value for key, value in where.items()):
                continue
            if any(
                getattr(record, key, None) is None or not getattr(record, key) < bound
                for key, bound in lt.items()
            ):
                continue
            results.append(record)

        if order_by is not None:
            results.sort(key=lambda r: getattr(r, order_by), reverse=descending)

        if limit is not None:
            results = results[:limit]

        return [record.model_copy(deep=True) for record in results]

    def clear(self) -> None:
        """Clear all tables (for testing)."""
        with self._rlock:
            for records in self._tables.values():
                records.clear()

    def count(self, table: MemoryTable) -> int:
        """Get the number of records in a table."""
        with self._rlock:
            return len(self._tables[table])
