"""Alembic migrations for the review store.

The target URL comes from ``ReviewEngineConfig`` (TOML or
``REVIEW_ENGINE_DATABASE__URL``) unless ``-x url=...`` is given on the
command line. Importing ``review_engine.database.models`` registers every
table on ``Base.metadata``, including the audit log, which has no foreign
key to reviews and so is not reachable through relationships.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

import review_engine.database.models as models
from review_engine.config import load_config

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

url = context.get_x_argument(as_dictionary=True).get("url") or load_config().database.url
config.set_main_option("sqlalchemy.url", url)

target_metadata = models.Base.metadata

# Review status, question type and comment type are stored as enums;
# autogenerate only notices a changed member list when types are compared.
CONFIGURE_OPTS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTS,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # SQLite cannot ALTER most constraints in place
    context.configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
        **CONFIGURE_OPTS,
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


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
