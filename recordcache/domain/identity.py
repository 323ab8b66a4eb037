"""Identity and index model: record capability set, ids, indexes, orderings.

Ids are int or str. The zero value of the scalar (0 or "") is the null id
and is reserved: a record whose id is 0 or "" is treated as "unset".
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Protocol, runtime_checkable

type ID = int | str


def is_null_id(record_id: Any) -> bool:
    """Return True if record_id is None or the zero value of its scalar kind."""
    if record_id is None:
        return True
    if isinstance(record_id, str):
        return len(record_id) == 0
    if isinstance(record_id, int) and not isinstance(record_id, bool):
        return record_id == 0
    return False


class Index(dict[str, Any]):
    """Field name -> value mapping; more than one entry is a composite index."""

    def add(self, field_name: str, value: Any) -> Index:
        self[field_name] = value
        return self

    def fields(self) -> list[str]:
        return list(self.keys())


def new_index(field_name: str, value: Any) -> Index:
    """Return a single-field index."""
    return Index({field_name: value})


@runtime_checkable
class Record[I: (int, str)](Protocol):
    """Capability set the cache needs from a record type."""

    def get_id(self) -> I:
        """Return the primary id."""
        ...

    def list_indexes(self) -> list[Index]:
        """Return every secondary (unique or multi) index this record belongs to."""
        ...


@dataclass(frozen=True)
class OrderBy:
    """One ordering term; renders as 'field ASC' or 'field DESC'."""

    field: str
    asc: bool = True

    def __str__(self) -> str:
        return f"{self.field} {'ASC' if self.asc else 'DESC'}"


class OrderBys(list[OrderBy]):
    """Ordered list of ordering terms; renders as a comma-joined clause."""

    def add(self, field_name: str, asc: bool = True) -> OrderBys:
        self.append(OrderBy(field_name, asc))
        return self

    def __str__(self) -> str:
        return ",".join(str(o) for o in self)


def new_order_bys(field_name: str, asc: bool = True) -> OrderBys:
    return OrderBys([OrderBy(field_name, asc)])


@dataclass(frozen=True)
class FullReplace[T]:
    """Update payload replacing the whole record."""

    record: T


@dataclass(frozen=True)
class PartialFields:
    """Update payload setting only the named fields."""

    fields: dict[str, Any] = dc_field(default_factory=dict)


type FieldChanges[T] = FullReplace[T] | PartialFields
