"""
Alembic Environment Configuration

This file configures Alembic for the links and click_events schema.
It handles:
- Database connection from settings
- Model imports for autogenerate
- Sync engine creation for migrations (Alembic uses sync drivers)
"""

from logging.config import fileConfig
from sqlalchemy import pool, create_engine
from sqlalchemy.engine import Connection

from alembic import context

# Import settings and models
from clicktrail.core.setting import settings
from sqlmodel import SQLModel
from clicktrail.db import models  # noqa: F401  registers links and click_events

# this is the Alembic Config object
config = context.config

# Override sqlalchemy.url with our settings
# Convert async URLs to sync URLs for Alembic (Alembic uses sync driver)
database_url = settings.DATABASE_URL

# Convert async database URLs to sync URLs for Alembic
if database_url.startswith("sqlite+aiosqlite://"):
    # SQLite: Remove aiosqlite, use sqlite
    if database_url.startswith("sqlite+aiosqlite:///"):
        database_url = database_url.replace("sqlite+aiosqlite:///", "sqlite:///")
    elif database_url.startswith("sqlite+aiosqlite://./"):
        database_url = database_url.replace("sqlite+aiosqlite://", "sqlite:///")
    else:
        database_url = database_url.replace("sqlite+aiosqlite://", "sqlite:///")
elif database_url.startswith("postgresql+asyncpg://"):
    # PostgreSQL: Convert asyncpg to psycopg2 (sync driver)
    database_url = database_url.replace("postgresql+asyncpg://", "postgresql+psycopg2://")

config.set_main_option("sqlalchemy.url", database_url)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Get SQLModel metadata for autogenerate
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL
    and not an Engine, though an Engine is acceptable
    here as well.  By skipping the Engine creation
    we don't even need a DBAPI to be available.

    Calls to context.execute() here emit the given string to the
    script output.
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
    """Run migrations with a connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode with the sync driver for either backend."""
    connectable = create_engine(
        database_url,
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        do_run_migrations(connection)

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

