"""Cache key builders. Single place for key format.

Key format: <prefix>/<table>/<field1>/<value1>/<field2>/<value2>/...
Field names are lower-cased and sorted so the same index always yields the
same key regardless of insertion order. Values must not contain
CACHE_KEY_SEP if keys are to stay unambiguous.
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from recordcache.core.constants import CACHE_KEY_SEP, FULL_TABLE_SUFFIX, NULL_LITERAL
from recordcache.domain.identity import Index


def stringify(value: Any, null: str = NULL_LITERAL) -> str:
    """Render a scalar as canonical text for keys and hash members.

    None (an unset optional) renders as null. Booleans render as true/false,
    integers as decimal, floats and Decimals as fixed-point, datetimes as
    RFC3339 (naive values are taken as UTC).
    """
    if value is None:
        return null
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return stringify(value.value, null)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:f}"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        text = value.isoformat(timespec="seconds")
        return text[:-6] + "Z" if text.endswith("+00:00") else text
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return repr(value)


def make_cache_key(prefix: str, table: str, index: Index | dict[str, Any]) -> str:
    """Cache key for a primary or secondary index lookup."""
    parts = [prefix, table]
    for field_name in sorted(index):
        parts.append(field_name.lower())
        parts.append(stringify(index[field_name], NULL_LITERAL))
    return CACHE_KEY_SEP.join(parts)


def full_table_key(prefix: str, table: str) -> str:
    """Cache key of the whole-table mirror hash (lower-cased in its entirety)."""
    return CACHE_KEY_SEP.join([prefix, table, FULL_TABLE_SUFFIX]).lower()


def unique_strings(values: Iterable[str]) -> list[str]:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(values))
