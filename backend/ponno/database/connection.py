"""
Database connection management with SQLAlchemy async engine.

The engine and session factory are the single shared client for the relational
store. They are created once (lazily, or eagerly by ``initialize_database`` at
startup), handed to request handlers through the ``get_db`` dependency and
disposed at shutdown.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from ponno.core.config import get_settings
from ponno.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _convert_database_url_to_async(url: str) -> str:
    """
    Convert PostgreSQL URL to async format.

    Args:
        url: Database connection URL

    Returns:
        Async-compatible database URL with asyncpg driver
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine() -> AsyncEngine:
    """
    Create async SQLAlchemy engine with connection pooling.

    Tests run without pooling so every session gets a fresh connection.

    Returns:
        Configured async SQLAlchemy engine
    """
    settings = get_settings()
    database_url = _convert_database_url_to_async(settings.database_url)

    pool_kwargs = (
        {"poolclass": NullPool}
        if settings.is_test
        else {
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_recycle": 3600,
        }
    )

    engine = create_async_engine(
        database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        connect_args={
            "server_settings": {
                "application_name": settings.app_name,
            },
            "command_timeout": 60,
            "timeout": 10,
        },
        **pool_kwargs,
    )

    logger.info(
        "Database engine created",
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        environment=settings.environment,
    )

    return engine


def get_engine() -> AsyncEngine:
    """
    Get or create the process-wide async database engine.

    Raises:
        RuntimeError: If engine initialization fails
    """
    global _engine

    if _engine is None:
        try:
            _engine = create_engine()
        except Exception as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the process-wide session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database session factory created")

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create async database session scoped to one unit of work.

    The session commits when the block exits normally and rolls back when it
    raises, so every request runs in a single transaction.

    Yields:
        Async database session
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.debug(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database session injection.

    Example:
        @router.get("/districts")
        async def list_districts(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session() as session:
        yield session


async def check_database_health(max_retries: int = 3, retry_delay: float = 1.0) -> bool:
    """
    Check database connectivity with retry and exponential backoff.

    Args:
        max_retries: Maximum number of connection attempts
        retry_delay: Base delay between retries in seconds

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(max_retries):
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database health check passed", attempt=attempt + 1)
            return True
        except (OperationalError, DBAPIError, OSError) as e:
            logger.warning(
                "Database health check failed",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
                error_type=type(e).__name__,
            )
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))

    logger.error("Database health check failed after all retries", max_retries=max_retries)
    return False


async def initialize_database() -> None:
    """
    Initialize the database client and verify connectivity.

    Called during application startup so the shared engine exists before the
    first request.

    Raises:
        RuntimeError: If the database is unreachable
    """
    logger.info("Initializing database connection")
    get_session_factory()

    if not await check_database_health(max_retries=5, retry_delay=2.0):
        raise RuntimeError("Database health check failed during initialization")

    logger.info("Database initialized successfully")


async def close_database_connections() -> None:
    """
    Dispose of the engine and forget the session factory.

    Called during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        try:
            await _engine.dispose()
            logger.info("Database connections closed and engine disposed")
        finally:
            _engine = None
            _session_factory = None
