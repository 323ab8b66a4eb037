"""Per-record cache-aside engine.

Cache layout for one table:
- primary key:   <prefix>/<table>/<id_field>/<id>        -> record JSON
- unique index:  <prefix>/<table>/<field>/<value>/...    -> id
- multi index:   <prefix>/<table>/<field>/<value>/...    -> [id, ...]
Any of them may hold the negative sentinel. Writes go to the store first and
then delete every key derived from the pre- and post-image; entries are
recomputed lazily on the next read.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import redis.asyncio as redis

from recordcache.application.interfaces.storage import StorageAdapter
from recordcache.domain.exceptions import RecordNotFoundError, UnknownIndexFieldError
from recordcache.domain.identity import (
    FieldChanges,
    Record,
    is_null_id,
    new_index,
)
from recordcache.infrastructure.cache.base import CacheBase
from recordcache.infrastructure.cache.keys import unique_strings
from recordcache.infrastructure.cache.redis_json import RedisJson

logger = logging.getLogger(__name__)


class RecordCache[T: Record, I: (int, str)](CacheBase[T, I]):
    """Cache-aside over one record type with negative caching.

    Concurrent misses on the same key may each query the store; the cache
    writes that follow are idempotent overwrites of the same value.
    """

    def __init__(
        self,
        prefix: str,
        table: str,
        id_field: str,
        storage: StorageAdapter[T, I],
        client: redis.Redis,
        record_type: type[T],
        id_type: type[I],
        *,
        ttl: int = 3600,
        op_timeout: float = 30.0,
        field_getters: Mapping[str, Callable[[T], Any]] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            prefix: First component of every cache key.
            table: Table or collection name (second key component).
            id_field: Name of the primary id field (third key component).
            storage: Authoritative store adapter.
            client: Shared redis.asyncio client (decode_responses=True).
            record_type: Record model used to (de)serialize cached values.
            id_type: int or str.
            ttl: Sliding expiry in seconds for every cache entry.
            op_timeout: Upper bound in seconds for each KV-store call.
            field_getters: Per-field value extractors used by
                list_by_unique_ints / list_by_unique_strs.
        """
        super().__init__(
            prefix, table, id_field, storage, client, id_type,
            ttl=ttl, op_timeout=op_timeout,
        )
        self.red: RedisJson[T] = RedisJson(client, record_type, ttl, op_timeout=op_timeout)
        self.field_getters: dict[str, Callable[[T], Any]] = dict(field_getters or {})

    async def get(self, record_id: I) -> T | None:
        """Return record by id, or None if the store has no such record."""
        key = self.primary_key(record_id)
        record, found = await self.red.get(key)
        if found:
            # Negative entries slide too, like every other hit.
            await self.red.expire(key)
            return record
        record = await self.storage.get(record_id)
        if record is None:
            await self.red.set_null(key)
            return None
        await self.red.set(key, record)
        return record

    async def get_many(self, ids: list[I]) -> list[T | None]:
        """Return records aligned with ids; None where the id does not exist.

        Only ids that are not cached at all are fetched from the store, in one
        batch. Ids the store does not have are negative-cached.
        """
        if not ids:
            return []
        keys = [self.primary_key(i) for i in ids]
        records, missing = await self.red.mget(keys)
        missing_set = set(missing)
        hit_keys = unique_strings(k for i, k in enumerate(keys) if i not in missing_set)
        if hit_keys:
            await self.red.expire(*hit_keys)
        if not missing:
            return records

        missed_ids = list(dict.fromkeys(ids[i] for i in missing))
        fetched = {r.get_id(): r for r in await self.storage.get_many(missed_ids)}
        for i in missing:
            records[i] = fetched.get(ids[i])

        await self.red.mset({self.primary_key(rid): r for rid, r in fetched.items()})
        await self.red.mset_null(
            self.primary_key(rid) for rid in missed_ids if rid not in fetched
        )
        return records

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T | None]:
        """Batch-resolve a unique int field; see _list_by_unique."""
        return await self._list_by_unique(field, values, self.storage.list_by_unique_ints)

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T | None]:
        """Batch-resolve a unique str field; see _list_by_unique."""
        return await self._list_by_unique(field, values, self.storage.list_by_unique_strs)

    async def _list_by_unique[V](
        self,
        field: str,
        values: list[V],
        query: Callable[[str, list[V]], Awaitable[list[T]]],
    ) -> list[T | None]:
        """Resolve many values of one unique field.

        All-or-nothing: when every value's index entry is cached the ids go
        through get_many and the result is aligned with values (None for a
        value confirmed absent); if any entry is missing, the store is
        queried for all values, every index entry is rewritten, and the
        store's records are returned as fetched.
        """
        getter = self.field_getters.get(field)
        if getter is None:
            raise UnknownIndexFieldError(field)
        if not values:
            return []
        keys = [self.make_cache_key(new_index(field, v)) for v in values]
        cached_ids, missing = await self.red_id.mget(keys)
        if not missing:
            await self.red_id.expire(*unique_strings(keys))
            resolved = iter(
                await self.get_many(
                    [i for i in cached_ids if i is not None and not is_null_id(i)]
                )
            )
            return [
                None if i is None or is_null_id(i) else next(resolved)
                for i in cached_ids
            ]

        records = await query(field, values)
        ids_by_value = {getter(r): r.get_id() for r in records}
        await self.red_id.mset(
            {k: ids_by_value[v] for k, v in zip(keys, values) if v in ids_by_value}
        )
        await self.red_id.mset_null(
            k for k, v in zip(keys, values) if v not in ids_by_value
        )
        return list(records)

    async def create(self, record: T) -> T:
        """Insert into the store, then drop the record's cache keys."""
        created = await self.storage.create(record)
        await self.clear_cache(created)
        return created

    async def save(self, record: T) -> T:
        """Create or replace depending on whether the id exists.

        A null id or an id the store does not have routes to create.
        """
        record_id = record.get_id()
        old = None if is_null_id(record_id) else await self.get(record_id)
        if old is None:
            saved = await self.storage.create(record)
        else:
            saved = await self.storage.save(record)
        await self.clear_cache(*[r for r in (old, saved) if r is not None])
        return saved

    async def update(self, record_id: I, changes: FieldChanges[T]) -> int:
        """Apply changes in the store and drop keys of the pre- and post-image.

        Returns the store's affected-row count; 0 for a null id.

        Raises:
            RecordNotFoundError: If no record has record_id.
        """
        if is_null_id(record_id):
            return 0
        old = await self.get(record_id)
        if old is None:
            raise RecordNotFoundError(self.table, record_id)
        affected = await self.storage.update(record_id, changes)
        new = await self.storage.get(record_id)
        await self.clear_cache(*[r for r in (old, new) if r is not None])
        return affected

    async def delete(self, *ids: I) -> int:
        """Delete from the store and drop the cache keys of the deleted records."""
        if not ids:
            return 0
        records = [r for r in await self.get_many(list(ids)) if r is not None]
        affected = await self.storage.delete(*ids)
        await self.clear_cache(*records)
        return affected

    async def clear_cache(self, *records: T) -> None:
        """Delete the primary and every secondary-index key of records, in one call."""
        if not records:
            return
        keys = unique_strings(
            [self.primary_key(r.get_id()) for r in records] + self.index_keys(records)
        )
        await self.red.delete(*keys)
        logger.debug("Cache INVALIDATE: %s (%s keys)", self.table, len(keys))
