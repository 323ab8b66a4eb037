"""Cache-aside and full-table mirror layer over Redis.

Pick one engine per table: RecordCache (per-record and per-index entries,
invalidated on write) or FullTableCache (whole table in one hash, written
through on write). Both front a StorageAdapter such as SqlAlchemyStorage
or FirestoreStorage.
"""

from recordcache.application.interfaces.storage import StorageAdapter
from recordcache.domain.exceptions import (
    CacheSerializationError,
    CacheTransportError,
    DocumentExistsError,
    RecordCacheException,
    RecordNotFoundError,
    UnknownIndexFieldError,
    UnsupportedOperationError,
)
from recordcache.domain.identity import (
    FullReplace,
    Index,
    OrderBy,
    OrderBys,
    PartialFields,
    Record,
    is_null_id,
    new_index,
    new_order_bys,
)
from recordcache.infrastructure.cache import (
    FullTableCache,
    RecordCache,
    RedisHashJson,
    RedisJson,
    make_cache_key,
    stringify,
)

__all__ = [
    "CacheSerializationError",
    "CacheTransportError",
    "DocumentExistsError",
    "FullReplace",
    "FullTableCache",
    "Index",
    "OrderBy",
    "OrderBys",
    "PartialFields",
    "Record",
    "RecordCache",
    "RecordCacheException",
    "RecordNotFoundError",
    "RedisHashJson",
    "RedisJson",
    "StorageAdapter",
    "UnknownIndexFieldError",
    "UnsupportedOperationError",
    "is_null_id",
    "make_cache_key",
    "new_index",
    "new_order_bys",
    "stringify",
]
