"""Database infrastructure package.

- **Session Management**: Async SQLAlchemy engine and session factory
- **Unit of Work**: One transaction per block, commit or roll back

Example:
    from taskflow_service.infra.database import unit_of_work

    async with unit_of_work() as session:
        await session.execute(...)
"""

from .session import (
    AsyncSessionLocal,
    SessionFactory,
    close_database,
    engine,
    get_async_session,
    init_database,
    unit_of_work,
)

__all__ = [
    "AsyncSessionLocal",
    "SessionFactory",
    "close_database",
    "engine",
    "get_async_session",
    "init_database",
    "unit_of_work",
]
