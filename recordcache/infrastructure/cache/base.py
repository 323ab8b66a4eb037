"""Shared engine state: key naming and the secondary-index caches.

Both engines cache secondary indexes the same way: a unique index maps to
one id, a multi index to an ordered id list, and a lookup confirmed absent
is stored as the negative sentinel. They differ only in how resolved ids
are turned into records (get / get_many).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

import redis.asyncio as redis

from recordcache.application.interfaces.storage import StorageAdapter
from recordcache.domain.identity import Index, OrderBys, Record, is_null_id, new_index
from recordcache.infrastructure.cache.keys import make_cache_key, unique_strings
from recordcache.infrastructure.cache.redis_json import RedisJson

logger = logging.getLogger(__name__)


class CacheBase[T: Record, I: (int, str)](ABC):
    """Cache key naming plus get_by/list_by over the index caches.

    prefix, table and id_field are plain attributes and may be reassigned.
    """

    def __init__(
        self,
        prefix: str,
        table: str,
        id_field: str,
        storage: StorageAdapter[T, I],
        client: redis.Redis,
        id_type: type[I],
        *,
        ttl: int,
        op_timeout: float,
    ) -> None:
        self.prefix = prefix
        self.table = table
        self.id_field = id_field
        self.storage = storage
        # unique index -> id, multi index -> [id, ...]
        self.red_id: RedisJson[I] = RedisJson(client, id_type, ttl, op_timeout=op_timeout)
        self.red_ids: RedisJson[list[I]] = RedisJson(
            client, list[id_type], ttl, op_timeout=op_timeout
        )

    def make_cache_key(self, index: Index) -> str:
        return make_cache_key(self.prefix, self.table, index)

    def primary_key(self, record_id: I) -> str:
        return self.make_cache_key(new_index(self.id_field, record_id))

    def index_keys(self, records: Iterable[T]) -> list[str]:
        """Deduplicated keys of every secondary index the records report."""
        return unique_strings(
            self.make_cache_key(index) for r in records for index in r.list_indexes()
        )

    @abstractmethod
    async def get(self, record_id: I) -> T | None: ...

    @abstractmethod
    async def get_many(self, ids: list[I]) -> list[T | None]: ...

    async def get_by(self, index: Index) -> T | None:
        """Resolve a unique index to a record, caching the index -> id mapping.

        Only the index entry is written on a store hit; the record's own
        cache entry is filled by the next get().
        """
        key = self.make_cache_key(index)
        cached_id, found = await self.red_id.get(key)
        if found:
            await self.red_id.expire(key)
            if cached_id is None or is_null_id(cached_id):
                return None
            return await self.get(cached_id)
        record = await self.storage.get_by(index)
        if record is None:
            await self.red_id.set_null(key)
            return None
        await self.red_id.set(key, record.get_id())
        return record

    async def list_by(
        self, index: Index, order_bys: OrderBys | None = None
    ) -> list[T | None]:
        """Resolve a multi index to records, caching the ordered id list.

        On a cache hit the records come from get_many (same length and order
        as the cached ids); on a miss they are returned as the store sent them.
        """
        key = self.make_cache_key(index)
        cached_ids, found = await self.red_ids.get(key)
        if found:
            await self.red_ids.expire(key)
            if cached_ids is None:
                return []
            return await self.get_many(cached_ids)
        records = await self.storage.list_by(index, order_bys or OrderBys())
        await self.red_ids.set(key, [r.get_id() for r in records])
        return list(records)

    async def close(self) -> None:
        await self.storage.close()
