"""Database session management with psycopg3 async driver."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeAlias

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskflow_service.core.settings import get_db_settings
from taskflow_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()

# Falls back to a local SQLite file when Postgres is disabled (tests, dev)
engine = (
    create_async_engine(db_settings.get_sqlalchemy_url(), **db_settings.engine_kwargs())
    if db_settings.is_configured
    else create_async_engine("sqlite+aiosqlite:///./taskflow.db", echo=db_settings.echo)
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

SessionFactory: TypeAlias = async_sessionmaker[AsyncSession]


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Task))
            tasks = result.scalars().all()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def unit_of_work(
    session_factory: SessionFactory | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Run a block inside one database transaction.

    The transaction commits when the block exits normally and rolls back
    when it raises; the session is closed either way. Commit errors
    propagate to the caller.

    Example:
        async with unit_of_work(factory) as session:
            task = await repo.create(session, Task(title="Write report"))
            await queue.enqueue(...)
    """
    factory = session_factory or AsyncSessionLocal
    session = factory()
    try:
        await session.begin()
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@retry(
    max_attempts=5,
    initial_delay=1.0,
    max_delay=30.0,
    exponential_base=2.0,
    jitter=True,
    stop_after_delay=60.0,
)
async def init_database() -> None:
    """Verify connectivity, retrying while the database comes up."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info(
        "Database connection established",
        extra={"dialect": engine.dialect.name},
    )


async def close_database() -> None:
    """Dispose of the engine and its pooled connections."""
    try:
        await engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})


__all__ = [
    "AsyncSessionLocal",
    "SessionFactory",
    "close_database",
    "engine",
    "get_async_session",
    "init_database",
    "unit_of_work",
]
