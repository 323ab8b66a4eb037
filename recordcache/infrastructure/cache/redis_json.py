"""Serialization-aware Redis adapter with TTL management and batching.

RedisJson stores JSON text under plain string keys; RedisHashJson adds the
hash-map operations used by the whole-table mirror. Every call is bounded by
op_timeout and fails with CacheTransportError; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any

import redis.asyncio as redis
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError
from redis.exceptions import WatchError

from recordcache.core.constants import NULL_SENTINEL
from recordcache.domain.exceptions import CacheSerializationError, CacheTransportError
from recordcache.domain.identity import Record
from recordcache.infrastructure.cache.keys import stringify

logger = logging.getLogger(__name__)


class RedisJson[T]:
    """JSON values of one shape (record, id or id list) under string keys.

    A stored NULL_SENTINEL means "confirmed absent in store"; get() reports
    it as found with value None, so callers can tell a negative-cache hit
    from a key that is not cached at all.
    """

    def __init__(
        self,
        client: redis.Redis,
        value_type: Any,
        ttl: int,
        *,
        op_timeout: float = 30.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Shared redis.asyncio client (decode_responses=True).
            value_type: Type of the cached values (e.g. a record model, int, list[str]).
            ttl: Expiry in seconds applied on every write and refresh.
            op_timeout: Upper bound in seconds for each KV-store call.
        """
        self.redis = client
        self.ttl = ttl
        self.op_timeout = op_timeout
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    async def _call(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.op_timeout)
        except TimeoutError as e:
            raise CacheTransportError(
                operation, f"timed out after {self.op_timeout}s"
            ) from e
        except (redis.RedisError, OSError) as e:
            raise CacheTransportError(operation, str(e)) from e

    def encode(self, key: str, value: T) -> str:
        try:
            return self._adapter.dump_json(value).decode()
        except PydanticSerializationError as e:
            raise CacheSerializationError(key, str(e)) from e

    def decode(self, key: str, raw: str) -> T:
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            raise CacheSerializationError(key, str(e)) from e

    async def get(self, key: str) -> tuple[T | None, bool]:
        """Return (value, found).

        found is False when the key is not cached. A negative-cache entry
        returns (None, True).
        """
        raw = await self._call("get", self.redis.get(key))
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None, False
        logger.debug("Cache HIT: %s", key)
        if raw == NULL_SENTINEL:
            return None, True
        return self.decode(key, raw), True

    async def set(self, key: str, value: T, ttl: int | None = None) -> None:
        raw = self.encode(key, value)
        await self._call("set", self.redis.set(key, raw, ex=ttl or self.ttl))
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl or self.ttl)

    async def set_null(self, key: str, ttl: int | None = None) -> None:
        """Store the negative sentinel under key."""
        await self._call("set", self.redis.set(key, NULL_SENTINEL, ex=ttl or self.ttl))
        logger.debug("Cache SET NULL: %s", key)

    async def mget(self, keys: list[str]) -> tuple[list[T | None], list[int]]:
        """Return (values, missing_indexes) aligned with keys.

        Slots for keys that are not cached, and for negative-cache entries,
        hold None; only the former are listed in missing_indexes.
        """
        if not keys:
            return [], []
        raws = await self._call("mget", self.redis.mget(keys))
        values: list[T | None] = []
        missing: list[int] = []
        for i, (key, raw) in enumerate(zip(keys, raws, strict=True)):
            if raw is None:
                missing.append(i)
                values.append(None)
            elif raw == NULL_SENTINEL:
                values.append(None)
            else:
                values.append(self.decode(key, raw))
        logger.debug("Cache MGET: %s keys, %s missing", len(keys), len(missing))
        return values, missing

    async def mset(self, values: Mapping[str, T], ttl: int | None = None) -> None:
        """Set every key in values and give each the TTL, in one pipeline."""
        if not values:
            return
        encoded = {key: self.encode(key, value) for key, value in values.items()}
        expiry = ttl or self.ttl

        async def _run() -> None:
            async with self.redis.pipeline(transaction=False) as pipe:
                pipe.mset(encoded)
                for key in encoded:
                    pipe.expire(key, expiry)
                await pipe.execute()

        await self._call("mset", _run())
        logger.debug("Cache MSET: %s keys (TTL: %ss)", len(encoded), expiry)

    async def mset_null(self, keys: Iterable[str], ttl: int | None = None) -> None:
        keys = list(keys)
        if not keys:
            return
        expiry = ttl or self.ttl

        async def _run() -> None:
            async with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.set(key, NULL_SENTINEL, ex=expiry)
                await pipe.execute()

        await self._call("mset", _run())
        logger.debug("Cache MSET NULL: %s keys", len(keys))

    async def expire(self, *keys: str) -> None:
        """Reset the TTL of each key (sliding expiry), pipelined."""
        if not keys:
            return

        async def _run() -> None:
            async with self.redis.pipeline(transaction=False) as pipe:
                for key in keys:
                    pipe.expire(key, self.ttl)
                await pipe.execute()

        await self._call("expire", _run())

    async def exists(self, key: str) -> bool:
        return bool(await self._call("exists", self.redis.exists(key)))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        deleted = await self._call("delete", self.redis.delete(*keys))
        logger.debug("Cache DELETE: %s (%s keys removed)", ", ".join(keys), deleted)
        return int(deleted or 0)


class RedisHashJson[T: Record](RedisJson[T]):
    """Records stored as members of one hash, keyed by stringified id."""

    async def hget(self, key: str, record_id: Any) -> T | None:
        raw = await self._call("hget", self.redis.hget(key, stringify(record_id, "")))
        if raw is None:
            logger.debug("Cache HMISS: %s[%s]", key, record_id)
            return None
        return self.decode(key, raw)

    async def hgetall(self, key: str) -> list[T]:
        raw = await self._call("hgetall", self.redis.hgetall(key))
        return [self.decode(key, value) for value in (raw or {}).values()]

    async def hmget(self, key: str, ids: list[Any]) -> list[T | None]:
        """Return records aligned with ids; None where the member is absent."""
        if not ids:
            return []
        members = [stringify(i, "") for i in ids]
        raws = await self._call("hmget", self.redis.hmget(key, members))
        return [None if raw is None else self.decode(key, raw) for raw in raws]

    async def hset(self, key: str, *records: T) -> None:
        if not records:
            return
        mapping = {stringify(r.get_id(), ""): self.encode(key, r) for r in records}
        await self._call("hset", self.redis.hset(key, mapping=mapping))
        logger.debug("Cache HSET: %s (%s members)", key, len(mapping))

    async def hdel(self, key: str, *ids: Any) -> None:
        if not ids:
            return
        members = [stringify(i, "") for i in ids]
        await self._call("hdel", self.redis.hdel(key, *members))
        logger.debug("Cache HDEL: %s (%s members)", key, len(members))

    async def replace_all(self, key: str, records: list[T]) -> None:
        """Atomically replace the hash with records and give it a fresh TTL."""
        mapping = {stringify(r.get_id(), ""): self.encode(key, r) for r in records}

        async def _run() -> None:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                if mapping:
                    pipe.hset(key, mapping=mapping)
                    pipe.expire(key, self.ttl)
                await pipe.execute()

        await self._call("hset", _run())
        logger.debug("Cache HLOAD: %s (%s members, TTL: %ss)", key, len(mapping), self.ttl)

    async def hset_existing(self, key: str, *records: T) -> bool:
        """Set members only if the hash exists. Returns False if it does not.

        A hash that is modified or expires between the check and the write is
        dropped, so the next read reloads it in full.
        """
        if not records:
            return False
        mapping = {stringify(r.get_id(), ""): self.encode(key, r) for r in records}

        async def _run() -> bool:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                if not await pipe.exists(key):
                    return False
                pipe.multi()
                pipe.hset(key, mapping=mapping)
                try:
                    await pipe.execute()
                except WatchError:
                    await self.redis.delete(key)
                    logger.info("Cache DROP: %s (changed during write-through)", key)
                    return False
                return True

        written = await self._call("hset", _run())
        logger.debug("Cache HSET: %s (%s members, written=%s)", key, len(mapping), written)
        return written
