"""
Alembic environment for the call records store.
The database URL comes from app settings (DATABASE_URL) unless overridden with
`alembic -x db_url=sqlite+aiosqlite:///./other.db upgrade head`.
"""
from logging.config import fileConfig
from pathlib import Path
import asyncio
import sys

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.database.connection import Base, get_database_url, get_connect_args
from app.models import Call  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url():
    override = context.get_x_argument(as_dictionary=True).get("db_url")
    return make_url(override) if override else get_database_url()


def _configure(**kwargs) -> None:
    # SQLite cannot ALTER most columns in place; batch mode rebuilds the table
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=True,
        compare_type=True,
        **kwargs
    )


def run_migrations_offline() -> None:
    """Emit SQL for the calls schema without a database connection"""
    _configure(
        url=_database_url().render_as_string(hide_password=False),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations through aiosqlite, the same driver the app uses"""
    engine = create_async_engine(
        _database_url(),
        connect_args=get_connect_args(),
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
