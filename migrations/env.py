"""Alembic environment for the async credit database.

The connection URL comes from ``database_config`` so migrations run against
the same database as the API. Importing the credit models registers the
``credito`` table on ``Base.metadata`` for autogenerate.
"""

import asyncio
import logging
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from src.core.config import get_settings
from src.infrastructure.credits import models as credit_models  # noqa: F401
from src.infrastructure.database.base import Base

config = context.config
logger = logging.getLogger(__name__)
target_metadata = Base.metadata

COMPARE_OPTIONS: dict[str, Any] = {
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    logger.info("Running credit migrations in offline mode")

    context.configure(
        url=get_settings().database_config.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations on a synchronous view of the async connection."""
    context.configure(
        connection=connection, target_metadata=target_metadata, **COMPARE_OPTIONS
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Connect with a pool-less async engine and run the migrations."""
    logger.info("Running credit migrations against the database")

    db_config = get_settings().database_config
    connectable = async_engine_from_config(
        {
            "sqlalchemy.url": db_config.database_url,
            "sqlalchemy.echo": db_config.echo,
        },
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
