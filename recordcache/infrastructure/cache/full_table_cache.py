"""Whole-table mirror engine.

The table lives in one hash, <prefix>/<table>/full, member = id and value =
record JSON. The hash's existence means "mirror loaded"; one TTL governs it.
Writes go to the store and then straight into the mirror (write-through);
secondary-index entries are still invalidated as in RecordCache.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from recordcache.application.interfaces.storage import StorageAdapter
from recordcache.domain.exceptions import RecordNotFoundError, UnsupportedOperationError
from recordcache.domain.identity import FieldChanges, Record, is_null_id
from recordcache.infrastructure.cache.base import CacheBase
from recordcache.infrastructure.cache.keys import full_table_key
from recordcache.infrastructure.cache.redis_json import RedisHashJson

logger = logging.getLogger(__name__)

_USE_LIST_ALL = "use list_all and filter in memory"


class FullTableCache[T: Record, I: (int, str)](CacheBase[T, I]):
    """Serves reads from a complete in-cache copy of a table.

    There is no lock around load(): concurrent loads each scan the table and
    the last write per member wins.
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
    ) -> None:
        super().__init__(
            prefix, table, id_field, storage, client, id_type,
            ttl=ttl, op_timeout=op_timeout,
        )
        self.red: RedisHashJson[T] = RedisHashJson(
            client, record_type, ttl, op_timeout=op_timeout
        )

    def cache_key(self) -> str:
        return full_table_key(self.prefix, self.table)

    async def load(self) -> None:
        """Copy the whole table into the mirror and set a fresh TTL."""
        records = await self.storage.list_all()
        await self.red.replace_all(self.cache_key(), records)
        logger.info("Full table cache loaded: %s (%s records)", self.table, len(records))

    async def _ensure_loaded(self) -> str:
        key = self.cache_key()
        if await self.red.exists(key):
            await self.red.expire(key)
        else:
            await self.load()
        return key

    async def get(self, record_id: I) -> T | None:
        key = self.cache_key()
        record = await self.red.hget(key, record_id)
        if record is not None:
            await self.red.expire(key)
            return record
        # Member missing: reload so records written while the mirror was
        # being loaded (or never written through) become visible.
        await self.load()
        return await self.red.hget(key, record_id)

    async def get_many(self, ids: list[I]) -> list[T | None]:
        """Return records aligned with ids; None where the id does not exist."""
        if not ids:
            return []
        key = await self._ensure_loaded()
        return await self.red.hmget(key, list(ids))

    async def list_all(self) -> list[T]:
        key = await self._ensure_loaded()
        return await self.red.hgetall(key)

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T]:
        raise UnsupportedOperationError("list_by_unique_ints", "FullTableCache", _USE_LIST_ALL)

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T]:
        raise UnsupportedOperationError("list_by_unique_strs", "FullTableCache", _USE_LIST_ALL)

    async def create(self, record: T) -> T:
        created = await self.storage.create(record)
        await self._write_through(created)
        await self._invalidate_indexes(created)
        return created

    async def save(self, record: T) -> T:
        """Create or replace depending on whether the id exists in the mirror."""
        record_id = record.get_id()
        old = None if is_null_id(record_id) else await self.get(record_id)
        if old is None:
            saved = await self.storage.create(record)
        else:
            saved = await self.storage.save(record)
        await self._write_through(saved)
        await self._invalidate_indexes(*[r for r in (old, saved) if r is not None])
        return saved

    async def update(self, record_id: I, changes: FieldChanges[T]) -> int:
        """Apply changes in the store, then rewrite the member from the store.

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
        if new is None:
            await self.red.hdel(self.cache_key(), record_id)
        else:
            await self._write_through(new)
        await self._invalidate_indexes(*[r for r in (old, new) if r is not None])
        return affected

    async def delete(self, *ids: I) -> int:
        if not ids:
            return 0
        records = [r for r in await self.get_many(list(ids)) if r is not None]
        affected = await self.storage.delete(*ids)
        await self.red.hdel(self.cache_key(), *ids)
        await self._invalidate_indexes(*records)
        return affected

    async def clear_cache(self, *records: T) -> None:
        """Drop the whole mirror (next read reloads it) and the records' index keys."""
        await self.red.delete(self.cache_key(), *self.index_keys(records))
        logger.info("Full table cache cleared: %s", self.table)

    async def _write_through(self, record: T) -> None:
        # An unloaded mirror is left alone; the next read loads the full table.
        await self.red.hset_existing(self.cache_key(), record)

    async def _invalidate_indexes(self, *records: T) -> None:
        keys = self.index_keys(records)
        if keys:
            await self.red.delete(*keys)
