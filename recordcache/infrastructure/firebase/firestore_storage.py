"""Firestore-backed storage adapter (implements StorageAdapter, string ids).

The record id is the document ID and is not stored as a field. Records are
pydantic models; nested fields may be addressed with dotted paths in
indexes, orderings and partial updates (e.g. "addr.country").
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import httpx
from pydantic import BaseModel

from recordcache.domain.exceptions import DocumentExistsError
from recordcache.domain.identity import (
    FieldChanges,
    FullReplace,
    Index,
    OrderBys,
    PartialFields,
    is_null_id,
)
from recordcache.infrastructure.firebase._rest_client import (
    DocumentSnapshot,
    FirestoreRESTClient,
    Query,
)
from recordcache.infrastructure.firebase._rest_encoding import nest_field_paths

logger = logging.getLogger(__name__)

# Firestore limit on the number of values in an IN filter.
_IN_FILTER_MAX = 30


class FirestoreStorage[T: BaseModel]:
    """Authoritative store for one Firestore collection."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        collection: str,
        record_type: type[T],
        id_field: str = "id",
    ) -> None:
        self._client = client
        self._coll = client.collection(collection)
        self.collection = collection
        self.record_type = record_type
        self.id_field = id_field

    def _to_record(self, snapshot: DocumentSnapshot) -> T:
        return self.record_type.model_validate(
            {**snapshot.to_dict(), self.id_field: snapshot.id}
        )

    def _to_fields(self, record: T) -> dict[str, Any]:
        return record.model_dump(exclude={self.id_field})

    async def _collect(self, query: Query) -> list[T]:
        return [self._to_record(s) async for s in query.stream()]

    def _query_for(self, index: Index) -> Query:
        query = self._coll.query()
        for field, value in index.items():
            query = query.where(field, "==", value)
        return query

    async def create(self, record: T) -> T:
        """Insert a document; a null id gets a fresh hex document ID.

        Raises:
            DocumentExistsError: If the document ID is already taken.
        """
        doc_id = getattr(record, self.id_field)
        if is_null_id(doc_id):
            doc_id = uuid.uuid4().hex
        try:
            await self._coll.create(doc_id, self._to_fields(record))
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 409:
                raise DocumentExistsError(doc_id) from None
            raise
        return record.model_copy(update={self.id_field: doc_id})

    async def save(self, record: T) -> T:
        doc_id = getattr(record, self.id_field)
        if is_null_id(doc_id):
            return await self.create(record)
        await self._coll.document(doc_id).set(self._to_fields(record))
        return record

    async def update(self, record_id: str, changes: FieldChanges[T]) -> int:
        """Patch an existing document. Returns 1 if it matched, else 0."""
        match changes:
            case PartialFields(fields=fields):
                if not fields:
                    return 0
                body, paths = nest_field_paths(fields), list(fields)
            case FullReplace(record=record):
                body = self._to_fields(record)
                paths = list(body)
            case _:
                raise TypeError(f"Unsupported update payload: {type(changes).__name__}")
        matched = await self._coll.document(record_id).update(body, paths)
        return 1 if matched else 0

    async def delete(self, *ids: str) -> int:
        """Delete the documents that exist among ids in one commit."""
        if not ids:
            return 0
        existing = await self._client.batch_get([self._coll.document(i).path for i in ids])
        await self._client.commit(
            [{"delete": self._coll.document(s.id).path} for s in existing]
        )
        return len(existing)

    async def get(self, record_id: str) -> T | None:
        snapshot = await self._coll.document(record_id).get()
        return self._to_record(snapshot) if snapshot else None

    async def get_many(self, ids: list[str]) -> list[T]:
        snapshots = await self._client.batch_get([self._coll.document(i).path for i in ids])
        return [self._to_record(s) for s in snapshots]

    async def get_by(self, index: Index) -> T | None:
        records = await self._collect(self._query_for(index).limit(1))
        return records[0] if records else None

    async def list_by(self, index: Index, order_bys: OrderBys | None = None) -> list[T]:
        query = self._query_for(index)
        for o in order_bys or []:
            query = query.order_by(o.field, "ASCENDING" if o.asc else "DESCENDING")
        return await self._collect(query)

    async def list_all(self) -> list[T]:
        return await self._collect(self._coll.query())

    async def _list_in(self, field: str, values: list[Any]) -> list[T]:
        records: list[T] = []
        for start in range(0, len(values), _IN_FILTER_MAX):
            chunk = values[start : start + _IN_FILTER_MAX]
            records.extend(await self._collect(self._coll.where(field, "in", chunk)))
        return records

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T]:
        return await self._list_in(field, values)

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T]:
        return await self._list_in(field, values)

    async def close(self) -> None:
        await self._client.aclose()
