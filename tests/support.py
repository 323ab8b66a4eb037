"""Test doubles shared by unit and integration tests.

Commodity is the record type used throughout; InMemoryStorage implements the
StorageAdapter contract over a dict and counts every backend call so tests
can assert how often the cache fell through to the store. FakeFirestore is
an httpx.MockTransport handler standing in for the Firestore REST API.
"""

from __future__ import annotations

import json
import uuid
from collections import Counter
from typing import Any

import httpx
from pydantic import BaseModel

from recordcache.domain.identity import (
    FieldChanges,
    FullReplace,
    Index,
    OrderBys,
    PartialFields,
    is_null_id,
)
from recordcache.infrastructure.firebase._rest_encoding import (
    decode_fields,
    decode_value,
    encode_fields,
)


class Commodity(BaseModel):
    """String-id record with a multi index (category) and a unique index (code)."""

    id: str = ""
    name: str = ""
    category: int = 0
    code: str = ""

    def get_id(self) -> str:
        return self.id

    def list_indexes(self) -> list[Index]:
        return [Index(category=self.category), Index(code=self.code)]


class Account(BaseModel):
    """Int-id record with a unique int index (number)."""

    id: int = 0
    number: int = 0
    owner: str = ""

    def get_id(self) -> int:
        return self.id

    def list_indexes(self) -> list[Index]:
        return [Index(number=self.number), Index(owner=self.owner)]


class InMemoryStorage[T: BaseModel]:
    """Dict-backed StorageAdapter; calls[name] counts invocations per operation."""

    def __init__(self, *records: T, id_field: str = "id") -> None:
        self.id_field = id_field
        self.rows: dict[Any, T] = {getattr(r, id_field): r for r in records}
        self.calls: Counter[str] = Counter()
        self.closed = False

    def _matches(self, record: T, index: Index) -> bool:
        return all(getattr(record, k) == v for k, v in index.items())

    def _new_id(self, record: T) -> Any:
        if isinstance(getattr(record, self.id_field), int):
            return max((k for k in self.rows), default=0) + 1
        return uuid.uuid4().hex

    async def create(self, record: T) -> T:
        self.calls["create"] += 1
        if is_null_id(getattr(record, self.id_field)):
            record = record.model_copy(update={self.id_field: self._new_id(record)})
        self.rows[getattr(record, self.id_field)] = record
        return record

    async def save(self, record: T) -> T:
        self.calls["save"] += 1
        self.rows[getattr(record, self.id_field)] = record
        return record

    async def update(self, record_id: Any, changes: FieldChanges[T]) -> int:
        self.calls["update"] += 1
        current = self.rows.get(record_id)
        if current is None:
            return 0
        match changes:
            case PartialFields(fields=fields):
                self.rows[record_id] = current.model_copy(update=fields)
            case FullReplace(record=record):
                self.rows[record_id] = record.model_copy(update={self.id_field: record_id})
        return 1

    async def delete(self, *ids: Any) -> int:
        self.calls["delete"] += 1
        return sum(1 for i in ids if self.rows.pop(i, None) is not None)

    async def get(self, record_id: Any) -> T | None:
        self.calls["get"] += 1
        return self.rows.get(record_id)

    async def get_many(self, ids: list[Any]) -> list[T]:
        self.calls["get_many"] += 1
        return [self.rows[i] for i in ids if i in self.rows]

    async def get_by(self, index: Index) -> T | None:
        self.calls["get_by"] += 1
        return next((r for r in self.rows.values() if self._matches(r, index)), None)

    async def list_by(self, index: Index, order_bys: OrderBys | None = None) -> list[T]:
        self.calls["list_by"] += 1
        records = [r for r in self.rows.values() if self._matches(r, index)]
        for o in reversed(order_bys or []):
            records.sort(key=lambda r: getattr(r, o.field), reverse=not o.asc)
        return records

    async def list_all(self) -> list[T]:
        self.calls["list_all"] += 1
        return list(self.rows.values())

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T]:
        self.calls["list_by_unique_ints"] += 1
        return [r for r in self.rows.values() if getattr(r, field) in values]

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T]:
        self.calls["list_by_unique_strs"] += 1
        return [r for r in self.rows.values() if getattr(r, field) in values]

    async def close(self) -> None:
        self.closed = True


FIRESTORE_BASE_URL = "https://firestore.test/v1"
FIRESTORE_DOCS = "projects/demo/databases/(default)/documents"


class FakeFirestore:
    """Minimal in-memory Firestore REST endpoint; records every request."""

    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []

    def put(self, collection: str, doc_id: str, **fields) -> None:
        name = f"{FIRESTORE_DOCS}/{collection}/{doc_id}"
        self.docs[name] = {"name": name, **encode_fields(fields)}

    def fields(self, collection: str, doc_id: str) -> dict:
        return decode_fields(self.docs[f"{FIRESTORE_DOCS}/{collection}/{doc_id}"])

    def bodies(self, suffix: str) -> list[dict]:
        return [
            json.loads(r.content) for r in self.requests if r.url.path.endswith(suffix)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1/")
        body = json.loads(request.content) if request.content else None
        if path.endswith(":batchGet"):
            return httpx.Response(200, json=self._batch_get(body["documents"]))
        if path.endswith(":commit"):
            for write in body["writes"]:
                self.docs.pop(write["delete"], None)
            return httpx.Response(200, json={"writeResults": [{} for _ in body["writes"]]})
        if path.endswith(":runQuery"):
            return httpx.Response(200, json=self._run_query(body["structuredQuery"]))
        if request.method == "POST":
            name = f"{path}/{request.url.params['documentId']}"
            if name in self.docs:
                return httpx.Response(409, json={"error": {"status": "ALREADY_EXISTS"}})
            self.docs[name] = {"name": name, **body}
            return httpx.Response(200, json=self.docs[name])
        if request.method == "PATCH":
            return self._patch(path, request.url.params, body)
        if request.method == "GET":
            if path not in self.docs:
                return httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
            return httpx.Response(200, json=self.docs[path])
        return httpx.Response(400)

    def _batch_get(self, names: list[str]) -> list[dict]:
        return [
            {"found": self.docs[n]} if n in self.docs else {"missing": n} for n in names
        ]

    def _patch(self, name: str, params: httpx.QueryParams, body: dict) -> httpx.Response:
        mask = params.get_list("updateMask.fieldPaths")
        if params.get("currentDocument.exists") == "true" and name not in self.docs:
            return httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})
        if mask:
            fields = dict(self.docs[name]["fields"])
            for path in mask:
                fields[path] = body["fields"][path]
            self.docs[name] = {"name": name, "fields": fields}
        else:
            self.docs[name] = {"name": name, **body}
        return httpx.Response(200, json=self.docs[name])

    def _run_query(self, query: dict) -> list[dict]:
        collection = query["from"][0]["collectionId"]
        docs = [
            d for n, d in self.docs.items()
            if n.rsplit("/", 1)[0] == f"{FIRESTORE_DOCS}/{collection}"
            and self._matches(decode_fields(d), query.get("where"))
        ]
        for order in reversed(query.get("orderBy", [])):
            docs.sort(
                key=lambda d: decode_fields(d)[order["field"]["fieldPath"]],
                reverse=order["direction"] == "DESCENDING",
            )
        if "limit" in query:
            docs = docs[: query["limit"]]
        if not docs:
            return [{"readTime": "2024-01-01T00:00:00Z"}]
        return [{"document": d} for d in docs]

    def _matches(self, fields: dict, where: dict | None) -> bool:
        if where is None:
            return True
        if "compositeFilter" in where:
            return all(self._matches(fields, f) for f in where["compositeFilter"]["filters"])
        f = where["fieldFilter"]
        actual = fields.get(f["field"]["fieldPath"])
        expected = decode_value(f["value"])
        if f["op"] == "IN":
            return actual in expected
        return actual == expected


