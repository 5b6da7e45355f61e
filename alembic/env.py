"""
Alembic environment for the xplorium schema.

The database URL comes from ``alembic -x dburl=...`` when given, otherwise
from the application settings. Online migrations run on the async engine.
"""
import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

import xplorium.models  # noqa: F401  registers every table on Base.metadata
from xplorium.core.settings import settings
from xplorium.database import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

x_args = context.get_x_argument(as_dictionary=True)


def database_url() -> str:
    url = x_args.get("dburl") or settings.SQLALCHEMY_DATABASE_URI
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def configure(**kwargs: Any) -> None:
    context.configure(
        target_metadata=Base.metadata,
        render_as_batch=True,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    url = database_url()
    connect_args = {}
    # Managed Postgres: `alembic -x ssl=true upgrade head`
    if url.startswith("postgresql+asyncpg://") and x_args.get("ssl", "").lower() == "true":
        connect_args["ssl"] = True

    engine = create_async_engine(url, poolclass=pool.NullPool, connect_args=connect_args)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
