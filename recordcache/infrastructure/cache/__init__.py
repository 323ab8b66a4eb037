"""Cache: Redis adapters, key utilities and the two cache engines.

RecordCache caches per-record and per-index lookups (cache-aside with
negative caching); FullTableCache keeps a whole table in one hash.
"""

from recordcache.infrastructure.cache.base import CacheBase
from recordcache.infrastructure.cache.client import (
    close_redis_client,
    connect_redis,
    create_redis_client,
)
from recordcache.infrastructure.cache.full_table_cache import FullTableCache
from recordcache.infrastructure.cache.keys import (
    full_table_key,
    make_cache_key,
    stringify,
    unique_strings,
)
from recordcache.infrastructure.cache.record_cache import RecordCache
from recordcache.infrastructure.cache.redis_json import RedisHashJson, RedisJson

__all__ = [
    "CacheBase",
    "FullTableCache",
    "RecordCache",
    "RedisHashJson",
    "RedisJson",
    "close_redis_client",
    "connect_redis",
    "create_redis_client",
    "full_table_key",
    "make_cache_key",
    "stringify",
    "unique_strings",
]
