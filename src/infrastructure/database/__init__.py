"""Async PostgreSQL access with SQLAlchemy 2.0 and asyncpg.

- **base**: Declarative base and common model fields
- **session**: Engine singleton, session lifecycle and health probe
- **repository**: Generic read-only repository
- **dependencies**: FastAPI session dependency
"""

from src.infrastructure.database.base import Base, BaseModel
from src.infrastructure.database.dependencies import DatabaseSession, get_db
from src.infrastructure.database.repository import BaseRepository
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_database_engine,
    get_async_session,
    get_engine,
    get_session_factory,
)

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "DatabaseSession",
    "check_database_connection",
    "close_database",
    "create_database_engine",
    "get_async_session",
    "get_db",
    "get_engine",
    "get_session_factory",
]
