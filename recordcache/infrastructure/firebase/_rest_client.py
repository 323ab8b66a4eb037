"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1. All HTTP
calls use httpx.AsyncClient so they do not block the event loop. Without
credentials (emulator, tests) requests are sent unauthenticated.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from recordcache.infrastructure.firebase._rest_encoding import (
    decode_fields,
    encode_fields,
    encode_value,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
DEFAULT_BASE_URL = "https://firestore.googleapis.com/v1"


def get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API. 404 returns None.

    Raises:
        httpx.HTTPStatusError: For any other non-2xx status (409 included).
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    resp = await client.request(method, url, headers=headers, json=body)
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    if method == "DELETE":
        return {}
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


class DocumentSnapshot:
    """Snapshot of a document (id + data)."""

    def __init__(self, id_: str, data: dict):
        self.id = id_
        self._data = data

    def to_dict(self) -> dict:
        return self._data

    @classmethod
    def from_document(cls, doc: dict) -> DocumentSnapshot:
        name = doc.get("name", "")
        return cls(name.split("/")[-1] if name else "", decode_fields(doc))


class DocumentReference:
    """Reference to a single document; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    @property
    def path(self) -> str:
        return self._path

    async def set(self, data: dict[str, Any]) -> None:
        """Create or overwrite the document (PATCH with full replace)."""
        await self._client.request("PATCH", self._path, encode_fields(data))

    async def update(self, fields: dict[str, Any], field_paths: list[str]) -> bool:
        """Patch only field_paths of an existing document.

        Returns False if the document does not exist (nothing is created).
        """
        params = [("updateMask.fieldPaths", p) for p in field_paths]
        params.append(("currentDocument.exists", "true"))
        out = await self._client.request(
            "PATCH", f"{self._path}?{urlencode(params)}", encode_fields(fields)
        )
        return out is not None

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; returns None if not found."""
        out = await self._client.request("GET", self._path)
        if not out:
            return None
        return DocumentSnapshot(self.id, decode_fields(out))

    async def delete(self) -> None:
        """Delete the document. Idempotent if document is already missing (404)."""
        await self._client.request("DELETE", self._path)


_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
    "array-contains": "ARRAY_CONTAINS",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
}


class Query:
    """Fluent query builder for a collection; runs via runQuery.

    Filters added with where() are combined with AND.
    """

    def __init__(self, client: FirestoreRESTClient, parent: str, collection_id: str):
        self._client = client
        self._parent = parent
        self._collection_id = collection_id
        self._filters: list[dict[str, Any]] = []
        self._orders: list[dict[str, Any]] = []
        self._offset: int = 0
        self._limit: int | None = None

    def where(self, field: str, op: str, value: Any) -> Query:
        self._filters.append(
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": _OP_MAP.get(op, op),
                    "value": encode_value(value),
                }
            }
        )
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> Query:
        self._orders.append({"field": {"fieldPath": field}, "direction": direction})
        return self

    def offset(self, n: int) -> Query:
        self._offset = n
        return self

    def limit(self, n: int) -> Query:
        self._limit = n
        return self

    def structured_query(self) -> dict[str, Any]:
        structured: dict[str, Any] = {"from": [{"collectionId": self._collection_id}]}
        if len(self._filters) == 1:
            structured["where"] = self._filters[0]
        elif self._filters:
            structured["where"] = {
                "compositeFilter": {"op": "AND", "filters": self._filters}
            }
        if self._orders:
            structured["orderBy"] = self._orders
        if self._offset:
            structured["offset"] = self._offset
        if self._limit:
            structured["limit"] = self._limit
        return structured

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield document snapshots."""
        resp = await self._client.request(
            "POST",
            f"{self._parent}:runQuery",
            {"structuredQuery": self.structured_query()},
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" in item:
                yield DocumentSnapshot.from_document(item["document"])


class CollectionReference:
    """Reference to a collection; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path.rstrip("/")

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document with the given ID.

        Raises:
            httpx.HTTPStatusError: 409 if the ID already exists.
        """
        await self._client.request(
            "POST",
            f"{self._path}?documentId={quote(document_id, safe='')}",
            encode_fields(data),
        )

    def query(self) -> Query:
        parent = self._path.rsplit("/", 1)[0]
        return Query(self._client, parent, self.id)

    def where(self, field: str, op: str, value: Any) -> Query:
        """Start a query with a filter. Chain .where(), .order_by(), .limit(), then .stream()."""
        return self.query().where(field, op, value)


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials=None,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self.database = f"projects/{project_id}/databases/(default)"
        self._prefix = f"{self.database}/documents"
        self._http = (
            http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        )
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str | None:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        if self._credentials is None:
            return None
        return await asyncio.to_thread(_get_access_token, self._credentials)

    async def request(self, method: str, path: str, body: dict | None = None) -> Any:
        """Send a request for a resource path relative to the API base URL."""
        return await _request_async(
            self._http,
            f"{self._base_url}/{path}",
            method=method,
            body=body,
            access_token=await self.get_token(),
        )

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")

    async def batch_get(self, paths: list[str]) -> list[DocumentSnapshot]:
        """Fetch many documents in one call; missing documents are skipped."""
        if not paths:
            return []
        resp = await self.request(
            "POST", f"{self._prefix}:batchGet", {"documents": paths}
        )
        items = resp if isinstance(resp, list) else []
        return [DocumentSnapshot.from_document(i["found"]) for i in items if "found" in i]

    async def commit(self, writes: list[dict[str, Any]]) -> int:
        """Apply writes atomically. Returns the number of write results."""
        if not writes:
            return 0
        resp = await self.request("POST", f"{self._prefix}:commit", {"writes": writes})
        return len((resp or {}).get("writeResults", []))
