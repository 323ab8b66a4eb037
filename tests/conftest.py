"""Pytest configuration and fixtures for recordcache.

Redis is replaced by fakeredis (FakeAsyncRedis, decoded responses) and the
authoritative store by tests.support.InMemoryStorage, so the whole suite runs
without external services.
"""

import fakeredis
import pytest

from recordcache.core.config import get_settings
from recordcache.infrastructure.cache.full_table_cache import FullTableCache
from recordcache.infrastructure.cache.record_cache import RecordCache
from tests.support import Account, Commodity, InMemoryStorage

TTL = 100


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings rebuilt from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def redis_client():
    """Fresh in-memory Redis per test."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def storage() -> InMemoryStorage[Commodity]:
    return InMemoryStorage()


@pytest.fixture
def record_cache(storage, redis_client) -> RecordCache[Commodity, str]:
    return RecordCache(
        "test", "commodity", "id", storage, redis_client, Commodity, str,
        ttl=TTL,
        field_getters={"code": lambda c: c.code},
    )


@pytest.fixture
def account_storage() -> InMemoryStorage[Account]:
    return InMemoryStorage()


@pytest.fixture
def account_cache(account_storage, redis_client) -> RecordCache[Account, int]:
    return RecordCache(
        "test", "account", "id", account_storage, redis_client, Account, int,
        ttl=TTL,
        field_getters={"number": lambda a: a.number},
    )


@pytest.fixture
def full_cache(storage, redis_client) -> FullTableCache[Commodity, str]:
    return FullTableCache(
        "test", "Commodity", "id", storage, redis_client, Commodity, str, ttl=TTL
    )
