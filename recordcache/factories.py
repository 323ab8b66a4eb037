"""Wiring helpers: storage adapter + Redis client -> cache engine.

TTL and per-call timeout default to the values in Settings and are passed
into each engine explicitly.
"""

from collections.abc import Callable, Mapping
from typing import Any

import redis.asyncio as redis
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from recordcache.core.config import Settings, get_settings
from recordcache.infrastructure.cache.full_table_cache import FullTableCache
from recordcache.infrastructure.cache.record_cache import RecordCache
from recordcache.infrastructure.firebase._rest_client import FirestoreRESTClient
from recordcache.infrastructure.firebase.firestore_storage import FirestoreStorage
from recordcache.infrastructure.persistence.database import Base
from recordcache.infrastructure.persistence.sqlalchemy_storage import SqlAlchemyStorage


def _durations(
    settings: Settings | None, ttl: int | None, op_timeout: float | None
) -> dict[str, Any]:
    settings = settings or get_settings()
    return {
        "ttl": ttl if ttl is not None else settings.cache_ttl_seconds,
        "op_timeout": (
            op_timeout if op_timeout is not None else settings.cache_op_timeout_seconds
        ),
    }


def _prefix(settings: Settings | None, prefix: str | None) -> str:
    return prefix if prefix is not None else (settings or get_settings()).cache_key_prefix


def new_sqlalchemy_record_cache[T: BaseModel, I: (int, str)](
    session_factory: async_sessionmaker[AsyncSession],
    model: type[Base],
    record_type: type[T],
    id_type: type[I],
    client: redis.Redis,
    *,
    id_field: str = "id",
    prefix: str | None = None,
    ttl: int | None = None,
    op_timeout: float | None = None,
    field_getters: Mapping[str, Callable[[T], Any]] | None = None,
    settings: Settings | None = None,
) -> RecordCache[T, I]:
    """RecordCache over one SQL table (table name = model.__tablename__)."""
    storage = SqlAlchemyStorage(session_factory, model, record_type, id_field)
    return RecordCache(
        _prefix(settings, prefix), storage.table, id_field, storage, client,
        record_type, id_type,
        field_getters=field_getters,
        **_durations(settings, ttl, op_timeout),
    )


def new_sqlalchemy_full_table_cache[T: BaseModel, I: (int, str)](
    session_factory: async_sessionmaker[AsyncSession],
    model: type[Base],
    record_type: type[T],
    id_type: type[I],
    client: redis.Redis,
    *,
    id_field: str = "id",
    prefix: str | None = None,
    ttl: int | None = None,
    op_timeout: float | None = None,
    settings: Settings | None = None,
) -> FullTableCache[T, I]:
    storage = SqlAlchemyStorage(session_factory, model, record_type, id_field)
    return FullTableCache(
        _prefix(settings, prefix), storage.table, id_field, storage, client,
        record_type, id_type,
        **_durations(settings, ttl, op_timeout),
    )


def new_firestore_record_cache[T: BaseModel](
    firestore: FirestoreRESTClient,
    collection: str,
    record_type: type[T],
    client: redis.Redis,
    *,
    id_field: str = "id",
    prefix: str | None = None,
    ttl: int | None = None,
    op_timeout: float | None = None,
    field_getters: Mapping[str, Callable[[T], Any]] | None = None,
    settings: Settings | None = None,
) -> RecordCache[T, str]:
    """RecordCache over one Firestore collection (document IDs are the ids)."""
    storage = FirestoreStorage(firestore, collection, record_type, id_field)
    return RecordCache(
        _prefix(settings, prefix), collection, id_field, storage, client,
        record_type, str,
        field_getters=field_getters,
        **_durations(settings, ttl, op_timeout),
    )


def new_firestore_full_table_cache[T: BaseModel](
    firestore: FirestoreRESTClient,
    collection: str,
    record_type: type[T],
    client: redis.Redis,
    *,
    id_field: str = "id",
    prefix: str | None = None,
    ttl: int | None = None,
    op_timeout: float | None = None,
    settings: Settings | None = None,
) -> FullTableCache[T, str]:
    storage = FirestoreStorage(firestore, collection, record_type, id_field)
    return FullTableCache(
        _prefix(settings, prefix), collection, id_field, storage, client,
        record_type, str,
        **_durations(settings, ttl, op_timeout),
    )
