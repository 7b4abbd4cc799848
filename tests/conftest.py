"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: in-memory SQLite engine, session factory and session
    - Queue Fixtures: in-memory JobQueue fakes
    - Utility Fixtures: task factory and clocks

The pipeline code takes its session factory and queue as constructor
arguments, so every fixture here is injected directly instead of patched.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from taskflow_service.features.tasks.models import Task

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory SQLite engine with the tasks schema.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    from taskflow_service.core.database.base import Base
    from taskflow_service.features.tasks import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Plain session for seeding and asserting on the store."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Queue Fixtures
# ============================================================================


class RecordingQueue:
    """JobQueue fake that records accepted jobs and can fail on demand.

    Example:
        queue = RecordingQueue(failures=2)  # first two inserts fail
    """

    def __init__(self, *, failures: int = 0, error: Exception | None = None) -> None:
        self.jobs: list[tuple[str, dict[str, Any], Any]] = []
        self.calls = 0
        self.failures = failures
        self.error = error or ConnectionError("queue unavailable")

    async def enqueue(self, name: str, payload: Any, options: Any = None) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        self.jobs.append((name, dict(payload), options))
        return f"job-{len(self.jobs)}"

    def names(self) -> list[str]:
        return [name for name, _, _ in self.jobs]


@pytest.fixture
def recording_queue() -> RecordingQueue:
    """Queue fake that accepts every job."""
    return RecordingQueue()


@pytest.fixture
def failing_queue() -> RecordingQueue:
    """Queue fake that rejects every job."""
    return RecordingQueue(failures=10_000)


@pytest.fixture
def mock_queue() -> AsyncMock:
    """AsyncMock JobQueue returning sequential job ids."""
    queue = AsyncMock()
    queue.enqueue.side_effect = [f"job-{i}" for i in range(1, 1000)]
    return queue


# ============================================================================
# Utility Fixtures
# ============================================================================


@pytest.fixture
def utc_now() -> datetime:
    """Fixed reference time for overdue queries."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_task(db_session: AsyncSession) -> Callable[..., Awaitable[Task]]:
    """Insert a task with sensible defaults and return it.

    Example:
        task = await make_task(status=TaskStatus.IN_PROGRESS, due_date=past)
    """
    from taskflow_service.features.tasks.models import Task

    async def _make(**overrides: Any) -> Task:
        values: dict[str, Any] = {"title": "Write report", "user_id": uuid4()}
        values.update(overrides)
        task = Task(**values)
        db_session.add(task)
        await db_session.commit()
        return task

    return _make
