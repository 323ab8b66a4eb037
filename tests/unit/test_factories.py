"""Tests for the Firestore factories and create_firestore_client."""

import json

import httpx
import pytest

from recordcache.core.config import Settings
from recordcache.domain.identity import Index, PartialFields
from recordcache.factories import new_firestore_full_table_cache, new_firestore_record_cache
from recordcache.infrastructure.cache.full_table_cache import FullTableCache
from recordcache.infrastructure.cache.record_cache import RecordCache
from recordcache.infrastructure.firebase.client import (
    create_firestore_client,
    load_service_account,
)
from tests.support import FIRESTORE_BASE_URL, Commodity, FakeFirestore


@pytest.fixture
def fake() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
async def http(fake):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    yield client
    await client.aclose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        firestore_project_id="demo",
        cache_key_prefix="app",
        cache_ttl_seconds=120,
    )


@pytest.fixture
def firestore(settings, http):
    return create_firestore_client(settings, http_client=http, base_url=FIRESTORE_BASE_URL)


async def test_record_cache_defaults_come_from_settings(firestore, settings, redis_client) -> None:
    cache = new_firestore_record_cache(
        firestore, "commodity", Commodity, redis_client, settings=settings
    )
    assert isinstance(cache, RecordCache)
    assert cache.prefix == "app"
    assert cache.table == "commodity"
    assert cache.red.ttl == 120
    assert cache.red.op_timeout == settings.cache_op_timeout_seconds


async def test_explicit_arguments_override_settings(firestore, settings, redis_client) -> None:
    cache = new_firestore_record_cache(
        firestore, "commodity", Commodity, redis_client,
        prefix="p", ttl=5, op_timeout=1.0, settings=settings,
    )
    assert cache.prefix == "p"
    assert cache.red.ttl == 5
    assert cache.red.op_timeout == 1.0


async def test_firestore_record_cache_end_to_end(firestore, settings, fake, redis_client) -> None:
    cache = new_firestore_record_cache(
        firestore, "commodity", Commodity, redis_client,
        settings=settings, field_getters={"code": lambda c: c.code},
    )
    fake.put("commodity", "c1", name="Coffee", category=1, code="COF")
    assert (await cache.get("c1")).name == "Coffee"
    reads = len(fake.requests)
    assert (await cache.get("c1")).name == "Coffee"
    assert len(fake.requests) == reads

    assert await cache.update("c1", PartialFields({"code": "NEW"})) == 1
    assert await cache.get_by(Index(code="COF")) is None
    assert (await cache.get_by(Index(code="NEW"))).id == "c1"
    assert [c.id for c in await cache.list_by_unique_strs("code", ["NEW"])] == ["c1"]


async def test_firestore_full_table_cache_end_to_end(firestore, settings, fake, redis_client) -> None:
    cache = new_firestore_full_table_cache(
        firestore, "Commodity", Commodity, redis_client, settings=settings
    )
    assert isinstance(cache, FullTableCache)
    assert cache.cache_key() == "app/commodity/full"
    fake.put("Commodity", "a", name="A")
    fake.put("Commodity", "b", name="B")
    assert sorted(c.id for c in await cache.list_all()) == ["a", "b"]
    assert len(fake.bodies(":runQuery")) == 1
    assert (await cache.get("b")).name == "B"
    assert len(fake.bodies(":runQuery")) == 1


def test_create_client_requires_project_id() -> None:
    with pytest.raises(ValueError, match="FIRESTORE_PROJECT_ID"):
        create_firestore_client(Settings(_env_file=None))


def test_load_service_account_from_key_and_path(tmp_path) -> None:
    key = {"project_id": "from-key", "type": "service_account"}
    assert load_service_account(
        Settings(_env_file=None, firebase_service_account_key=json.dumps(key))
    ) == key
    path = tmp_path / "sa.json"
    path.write_text(json.dumps(key), encoding="utf-8")
    assert load_service_account(
        Settings(_env_file=None, firebase_service_account_path=str(path))
    ) == key
    assert load_service_account(Settings(_env_file=None)) is None


def test_load_service_account_rejects_bad_input(tmp_path) -> None:
    with pytest.raises(ValueError, match="not valid JSON"):
        load_service_account(Settings(_env_file=None, firebase_service_account_key="{nope"))
    with pytest.raises(ValueError, match="file not found"):
        load_service_account(
            Settings(_env_file=None, firebase_service_account_path=str(tmp_path / "x.json"))
        )
