"""Storage adapter interface (port) for the authoritative record store.

Concrete backends (SQLAlchemy, Firestore) implement this contract; the
cache engines consume it and own the order/length semantics of batch reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from recordcache.domain.identity import FieldChanges, Index, OrderBys


class StorageAdapter[T, I: (int, str)](Protocol):
    """CRUD and indexed queries against the source of truth."""

    async def create(self, record: T) -> T:
        """Insert record; return it as persisted (id assigned if it was null)."""
        ...

    async def save(self, record: T) -> T:
        """Insert or replace record (upsert); return it as persisted."""
        ...

    async def update(self, record_id: I, changes: FieldChanges[T]) -> int:
        """Apply a full or partial update. Returns affected row count."""
        ...

    async def delete(self, *ids: I) -> int:
        """Delete records by id. Returns affected row count."""
        ...

    async def get(self, record_id: I) -> T | None:
        """Return record by id, or None."""
        ...

    async def get_many(self, ids: list[I]) -> list[T]:
        """Return the records that exist among ids, in any order."""
        ...

    async def get_by(self, index: Index) -> T | None:
        """Return the first record matching every field of index, or None."""
        ...

    async def list_by(self, index: Index, order_bys: OrderBys | None = None) -> list[T]:
        """Return records matching index, ordered by order_bys."""
        ...

    async def list_all(self) -> list[T]:
        """Return every record of the table."""
        ...

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T]:
        """Return records whose field value is in values."""
        ...

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T]:
        """Return records whose field value is in values."""
        ...

    async def close(self) -> None:
        """Release resources owned by the adapter."""
        ...
