"""SQLAlchemy storage adapter: StorageAdapter over an async session factory.

Rows are mapped to records with record_type.model_validate(row,
from_attributes=True) and records to rows through model_dump(). Each
operation runs in its own transaction.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy import and_, delete as sa_delete, inspect as sa_inspect, select
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import InstrumentedAttribute

from recordcache.domain.identity import (
    FieldChanges,
    FullReplace,
    Index,
    OrderBys,
    PartialFields,
    is_null_id,
)
from recordcache.infrastructure.persistence.database import Base

logger = logging.getLogger(__name__)


class SqlAlchemyStorage[T: BaseModel, I: (int, str)]:
    """Authoritative store for one ORM model (one table)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[Base],
        record_type: type[T],
        id_field: str = "id",
    ) -> None:
        self.session_factory = session_factory
        self.model = model
        self.record_type = record_type
        self._mapper = sa_inspect(model)
        self.id_column = self._column(id_field)

    @property
    def table(self) -> str:
        return self.model.__tablename__

    def _column(self, field: str) -> InstrumentedAttribute[Any]:
        """ORM attribute for a record field name (exact, then case-insensitive)."""
        attrs = self._mapper.column_attrs
        if field in attrs:
            return getattr(self.model, field)
        for attr in attrs:
            if attr.key.lower() == field.lower():
                return getattr(self.model, attr.key)
        raise ValueError(f"{self.model.__name__} has no column for field {field!r}")

    def _where(self, index: Index) -> Any:
        return and_(*(self._column(k) == v for k, v in index.items()))

    def _to_record(self, row: Base) -> T:
        return self.record_type.model_validate(row, from_attributes=True)

    def _row_values(self, record: T) -> dict[str, Any]:
        keys = {attr.key for attr in self._mapper.column_attrs}
        return {k: v for k, v in record.model_dump().items() if k in keys}

    async def create(self, record: T) -> T:
        values = self._row_values(record)
        if is_null_id(values.get(self.id_column.key)):
            values.pop(self.id_column.key, None)
        async with self.session_factory.begin() as session:
            row = self.model(**values)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return self._to_record(row)

    async def save(self, record: T) -> T:
        """Insert when the id is null or absent, otherwise replace the row."""
        values = self._row_values(record)
        record_id = values.get(self.id_column.key)
        if is_null_id(record_id) or await self.get(record_id) is None:
            return await self.create(record)
        async with self.session_factory.begin() as session:
            row = await session.merge(self.model(**values))
            await session.flush()
            return self._to_record(row)

    async def update(self, record_id: I, changes: FieldChanges[T]) -> int:
        match changes:
            case PartialFields(fields=fields):
                if not fields:
                    return 0
                values = {self._column(k).key: v for k, v in fields.items()}
                stmt = (
                    sa_update(self.model)
                    .where(self.id_column == record_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                async with self.session_factory.begin() as session:
                    result = await session.execute(stmt)
                    return result.rowcount or 0
            case FullReplace(record=record):
                values = self._row_values(record)
                values.pop(self.id_column.key, None)
                async with self.session_factory.begin() as session:
                    result = await session.execute(
                        select(self.model).where(self.id_column == record_id)
                    )
                    row = result.scalars().first()
                    if row is None:
                        return 0
                    for key, value in values.items():
                        setattr(row, key, value)
                    await session.flush()
                    return 1
        raise TypeError(f"Unsupported update payload: {type(changes).__name__}")

    async def delete(self, *ids: I) -> int:
        if not ids:
            return 0
        stmt = (
            sa_delete(self.model)
            .where(self.id_column.in_(ids))
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory.begin() as session:
            result = await session.execute(stmt)
            return result.rowcount or 0

    async def _select(self, *criteria: Any, order_bys: OrderBys | None = None) -> list[T]:
        stmt = select(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_bys:
            stmt = stmt.order_by(
                *(
                    self._column(o.field).asc() if o.asc else self._column(o.field).desc()
                    for o in order_bys
                )
            )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_record(row) for row in result.scalars().all()]

    async def get(self, record_id: I) -> T | None:
        rows = await self._select(self.id_column == record_id)
        return rows[0] if rows else None

    async def get_many(self, ids: list[I]) -> list[T]:
        if not ids:
            return []
        return await self._select(self.id_column.in_(ids))

    async def get_by(self, index: Index) -> T | None:
        stmt = select(self.model).where(self._where(index)).limit(1)
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).scalars().first()
            return self._to_record(row) if row is not None else None

    async def list_by(self, index: Index, order_bys: OrderBys | None = None) -> list[T]:
        return await self._select(self._where(index), order_bys=order_bys)

    async def list_all(self) -> list[T]:
        return await self._select()

    async def list_by_unique_ints(self, field: str, values: list[int]) -> list[T]:
        if not values:
            return []
        return await self._select(self._column(field).in_(values))

    async def list_by_unique_strs(self, field: str, values: list[str]) -> list[T]:
        if not values:
            return []
        return await self._select(self._column(field).in_(values))

    async def close(self) -> None:
        """No-op: the session factory and engine belong to the caller."""
