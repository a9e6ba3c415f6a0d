"""Alembic environment configuration for the review service.

This module configures Alembic to run migrations in both offline and online
modes. The database URL is taken from the environment variable
``DATABASE_URL`` (optionally loaded from a ``.env`` file) and falls back to
``sqlalchemy.url`` in ``alembic.ini``. The service uses async drivers
(asyncpg, aiosqlite), so online migrations run through an async engine.
"""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from review_service.models import Base

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


target_metadata = Base.metadata

ENV_DB_KEY = "DATABASE_URL"

database_url = os.getenv(ENV_DB_KEY)
if database_url:
    config.set_main_option("sqlalchemy.url", database_url)
elif not config.get_main_option("sqlalchemy.url"):
    raise ValueError(f"{ENV_DB_KEY} is not set in the environment variables.")


def run_migrations_offline() -> None:
    """Run Alembic migrations in offline mode.

    Offline mode generates SQL statements without an active database
    connection. The database URL is taken from the Alembic configuration.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run Alembic migrations in online mode against an async engine."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
