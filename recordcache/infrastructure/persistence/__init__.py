"""Persistence: SQLAlchemy engine/session factory and the SQL storage adapter."""

from recordcache.infrastructure.persistence.database import (
    Base,
    create_async_session_factory,
    create_engine_from_settings,
)
from recordcache.infrastructure.persistence.sqlalchemy_storage import SqlAlchemyStorage

__all__ = [
    "Base",
    "SqlAlchemyStorage",
    "create_async_session_factory",
    "create_engine_from_settings",
]
