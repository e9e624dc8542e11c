"""
Alembic environment configuration for async database migrations.

This module configures the Alembic migration environment with async support
and the marketplace models, for both offline and online modes. The database
URL always comes from application settings.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from ponno.core.config import get_settings
from ponno.core.logging import get_logger
from ponno.database.connection import _convert_database_url_to_async

# Importing the package registers every model with Base.metadata
from ponno.database.models import Base

# Alembic Config object provides access to values within the .ini file
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

settings = get_settings()
logger = get_logger(__name__)

# Set target metadata for autogenerate support
target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", _convert_database_url_to_async(settings.database_url))


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Emits the migration SQL to the script output without connecting.
    """
    url = config.get_main_option("sqlalchemy.url")
    logger.info("Running migrations in offline mode", url_prefix=url.split("://")[0])

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()
    logger.info("Offline migrations completed successfully")


def do_run_migrations(connection: Connection) -> None:
    """
    Execute migrations with the given connection.

    Args:
        connection: SQLAlchemy connection to use for migrations
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        transaction_per_migration=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """
    Run migrations in 'online' mode with an async engine.
    """
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    try:
        async with connectable.connect() as connection:
            logger.info("Database connection established for migrations")
            await connection.run_sync(do_run_migrations)
    except Exception as e:
        logger.error(
            "Async migration failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await connectable.dispose()

    logger.info("Online migrations completed successfully")


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.
    """
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
