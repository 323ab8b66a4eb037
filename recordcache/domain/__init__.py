"""Domain layer: identity/index model and exceptions.

No dependencies on infrastructure. Used by the cache engines and the
storage adapters.
"""

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
    ID,
    FieldChanges,
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

__all__ = [
    "ID",
    "CacheSerializationError",
    "CacheTransportError",
    "DocumentExistsError",
    "FieldChanges",
    "FullReplace",
    "Index",
    "OrderBy",
    "OrderBys",
    "PartialFields",
    "Record",
    "RecordCacheException",
    "RecordNotFoundError",
    "UnknownIndexFieldError",
    "UnsupportedOperationError",
    "is_null_id",
    "new_index",
    "new_order_bys",
]
