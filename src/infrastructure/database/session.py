"""Async engine and session lifecycle management.

A single ``AsyncEngine`` is shared by the whole process through
``_DatabaseManager``. Sessions handed out by ``get_async_session`` commit on
success and roll back on error. When ``log_config.enable_sql_logging`` is on,
cursor events time every statement and slow ones are logged with sanitized
parameters.
"""

import threading
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import get_settings
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.context import RequestContext
from src.core.error_context import sanitize_sql_params
from src.infrastructure.constants import (
    COMMAND_TIMEOUT_SECONDS,
    MAX_LOGGED_STATEMENT_LENGTH,
    POOL_RECYCLE_SECONDS,
)

type QueryParameters = dict[str, Any] | list[Any] | tuple[Any, ...] | None

_query_start_times: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _before_cursor_execute(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: QueryParameters,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    _query_start_times[context] = time.perf_counter()


def _after_cursor_execute(
    _conn: Connection,
    cursor: DBAPICursor,
    statement: str,
    parameters: QueryParameters,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    """Log the statement when it ran longer than the slow query threshold."""
    start_time = _query_start_times.pop(context, None)
    if start_time is None:
        return

    duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
    threshold_ms = get_settings().log_config.slow_query_threshold_ms
    if duration_ms < threshold_ms:
        return

    clean_statement = " ".join(statement.split())[:MAX_LOGGED_STATEMENT_LENGTH]
    logger.warning(
        "Slow query detected: {:.2f}ms",
        duration_ms,
        query=clean_statement,
        duration_ms=round(duration_ms, 2),
        rows_affected=getattr(cursor, "rowcount", -1),
        parameters=sanitize_sql_params(parameters),
        correlation_id=RequestContext.get_correlation_id(),
        threshold_ms=threshold_ms,
    )


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine with the configured connection pool.

    Args:
        database_url: Optional database URL overriding the configured one.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    settings = get_settings()
    db_config = settings.database_config

    engine = create_async_engine(
        database_url or db_config.database_url,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=db_config.pool_pre_ping,
        echo=db_config.echo,
        pool_recycle=POOL_RECYCLE_SECONDS,
        connect_args={
            "server_settings": {"jit": "off"},
            "command_timeout": COMMAND_TIMEOUT_SECONDS,
        },
    )

    if settings.log_config.enable_sql_logging:
        sync_engine = engine.sync_engine
        event.listen(sync_engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(sync_engine, "after_cursor_execute", _after_cursor_execute)
        logger.info("Registered slow query event listeners")

    logger.info(
        "Created database engine - pool_size: {}, max_overflow: {}, sql_logging: {}",
        db_config.pool_size,
        db_config.max_overflow,
        settings.log_config.enable_sql_logging,
    )
    return engine


class _DatabaseManager:
    """Holds the engine and session factory without module-level globals."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = threading.Lock()

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            with self._lock:
                # Double-checked locking pattern
                if self._engine is None:
                    self._engine = create_database_engine()
        return self._engine

    def get_session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._async_session_factory is None:
            engine = self.get_engine()
            with self._lock:
                if self._async_session_factory is None:
                    self._async_session_factory = async_sessionmaker(
                        engine,
                        class_=AsyncSession,
                        expire_on_commit=False,
                    )
                    logger.info("Created async session factory")
        return self._async_session_factory

    async def close(self) -> None:
        """Dispose of the engine and forget the session factory."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self.reset()

    def reset(self) -> None:
        """Reset the manager state. Used primarily for testing."""
        self._engine = None
        self._async_session_factory = None


_db_manager = _DatabaseManager()


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine."""
    return _db_manager.get_engine()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory."""
    return _db_manager.get_session_factory()


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error.

    Example:
        async with get_async_session() as session:
            repository = CreditRepository(session)
            credits = await repository.find_by_invoice_number("7891011")
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.debug("Database session rolled back due to error")
            raise


async def close_database() -> None:
    """Close the engine; called on application shutdown."""
    await _db_manager.close()


async def check_database_connection() -> tuple[bool, str | None]:
    """Run ``SELECT 1`` against the database.

    Returns:
        tuple[bool, str | None]: Whether the probe succeeded and, if not,
            the error message.
    """
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return False, str(e)
    except OSError as e:
        # asyncpg raises OSError subclasses when the server is unreachable
        return False, str(e)
    else:
        return True, None
