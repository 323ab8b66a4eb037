"""Tests for the JSON-aware Redis adapters (string keys and hash mirror)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from recordcache.core.constants import NULL_SENTINEL
from recordcache.domain.exceptions import CacheSerializationError, CacheTransportError
from recordcache.infrastructure.cache.redis_json import RedisHashJson, RedisJson
from tests.support import Account, Commodity

TTL = 100


@pytest.fixture
def red(redis_client) -> RedisJson[Commodity]:
    return RedisJson(redis_client, Commodity, TTL)


@pytest.fixture
def red_hash(redis_client) -> RedisHashJson[Commodity]:
    return RedisHashJson(redis_client, Commodity, TTL)


async def test_get_missing_key_is_not_found(red) -> None:
    assert await red.get("k") == (None, False)


async def test_set_then_get_with_ttl(red, redis_client) -> None:
    c = Commodity(id="c1", name="Coffee", category=1, code="COF")
    await red.set("k", c)
    assert await red.get("k") == (c, True)
    assert 0 < await redis_client.ttl("k") <= TTL


async def test_negative_entry_is_found_with_none(red, redis_client) -> None:
    await red.set_null("k")
    assert await redis_client.get("k") == NULL_SENTINEL
    assert await red.get("k") == (None, True)
    assert await redis_client.ttl("k") > 0


async def test_malformed_payload_raises_serialization_error(red, redis_client) -> None:
    await redis_client.set("k", "{not json")
    with pytest.raises(CacheSerializationError) as exc_info:
        await red.get("k")
    assert exc_info.value.details["key"] == "k"


async def test_wrong_shape_payload_raises_serialization_error(redis_client) -> None:
    """A scalar id read through a list-of-ids adapter is malformed, not a miss."""
    await redis_client.set("k", '"c1"')
    ids: RedisJson[list[str]] = RedisJson(redis_client, list[str], TTL)
    with pytest.raises(CacheSerializationError):
        await ids.get("k")


async def test_mget_aligns_values_and_reports_only_uncached(red) -> None:
    c = Commodity(id="c1")
    await red.set("a", c)
    await red.set_null("b")
    values, missing = await red.mget(["a", "b", "c"])
    assert values == [c, None, None]
    assert missing == [2]


async def test_mget_empty(red) -> None:
    assert await red.mget([]) == ([], [])


async def test_mset_and_mset_null_apply_ttl(red, redis_client) -> None:
    await red.mset({"a": Commodity(id="a"), "b": Commodity(id="b")})
    await red.mset_null(["c"])
    for key in ("a", "b", "c"):
        assert 0 < await redis_client.ttl(key) <= TTL
    assert await redis_client.get("c") == NULL_SENTINEL


async def test_expire_refreshes_ttl(red, redis_client) -> None:
    await red.set("a", Commodity(id="a"), ttl=5)
    await red.expire("a")
    assert await redis_client.ttl("a") > 5


async def test_delete_returns_removed_count(red) -> None:
    await red.set("a", Commodity(id="a"))
    assert await red.delete("a", "b") == 1
    assert await red.delete() == 0
    assert await red.exists("a") is False


async def test_id_adapter_roundtrips_int(redis_client) -> None:
    ids: RedisJson[int] = RedisJson(redis_client, int, TTL)
    await ids.set("k", 42)
    assert await redis_client.get("k") == "42"
    assert await ids.get("k") == (42, True)


async def test_transport_error_is_wrapped() -> None:
    client = MagicMock()
    client.get = AsyncMock(side_effect=redis.ConnectionError("connection refused"))
    red: RedisJson[Commodity] = RedisJson(client, Commodity, TTL)
    with pytest.raises(CacheTransportError) as exc_info:
        await red.get("k")
    assert exc_info.value.details == {"operation": "get", "reason": "connection refused"}


async def test_call_timeout_is_transport_error() -> None:
    async def slow_get(key):
        await asyncio.sleep(1)

    client = MagicMock()
    client.get = slow_get
    red: RedisJson[Commodity] = RedisJson(client, Commodity, TTL, op_timeout=0.01)
    with pytest.raises(CacheTransportError) as exc_info:
        await red.get("k")
    assert "timed out" in exc_info.value.details["reason"]


async def test_hash_replace_all_and_reads(red_hash, redis_client) -> None:
    a, b = Commodity(id="a", name="A"), Commodity(id="b", name="B")
    await red_hash.replace_all("h", [a, b])
    assert 0 < await redis_client.ttl("h") <= TTL
    assert await red_hash.hget("h", "a") == a
    assert await red_hash.hget("h", "zz") is None
    assert sorted(await red_hash.hgetall("h"), key=lambda c: c.id) == [a, b]
    assert await red_hash.hmget("h", ["b", "x", "a"]) == [b, None, a]


async def test_hash_replace_all_drops_stale_members(red_hash) -> None:
    await red_hash.replace_all("h", [Commodity(id="old")])
    await red_hash.replace_all("h", [Commodity(id="new")])
    assert await red_hash.hget("h", "old") is None


async def test_hash_replace_all_empty_leaves_no_key(red_hash) -> None:
    await red_hash.replace_all("h", [])
    assert await red_hash.exists("h") is False


async def test_hash_int_ids_are_stringified_members(redis_client) -> None:
    accounts: RedisHashJson[Account] = RedisHashJson(redis_client, Account, TTL)
    await accounts.hset("h", Account(id=7, number=70))
    assert await redis_client.hkeys("h") == ["7"]
    assert (await accounts.hget("h", 7)).number == 70
    await accounts.hdel("h", 7)
    assert await accounts.hget("h", 7) is None


async def test_hset_existing_skips_missing_hash(red_hash) -> None:
    assert await red_hash.hset_existing("h", Commodity(id="a")) is False
    assert await red_hash.exists("h") is False


async def test_hset_existing_writes_into_loaded_hash(red_hash, redis_client) -> None:
    await red_hash.replace_all("h", [Commodity(id="a")])
    assert await red_hash.hset_existing("h", Commodity(id="b", name="B")) is True
    assert (await red_hash.hget("h", "b")).name == "B"
    assert 0 < await redis_client.ttl("h") <= TTL
