"""Core database package: declarative base, mixins and the generic repository.

Base Classes and Mixins:
    - Base: Declarative base with constraint naming convention
    - UUIDPKMixin: UUID v4 primary key
    - TimestampMixin: created_at, updated_at tracking
    - UUIDTimestampedBase: UUID PK + timestamps

Repository:
    - BaseRepository[T]: Generic CRUD with explicit session passing
    - SearchResult[T]: Paginated result container

Exceptions:
    - RepositoryError: Base exception for repository operations
    - NotFoundError: Entity not found (404-like)
"""

from __future__ import annotations

from taskflow_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDPKMixin,
    UUIDTimestampedBase,
)
from taskflow_service.core.database.exceptions import NotFoundError, RepositoryError
from taskflow_service.core.database.repository import BaseRepository, SearchResult

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "RepositoryError",
    "SearchResult",
    "TimestampMixin",
    "UUIDPKMixin",
    "UUIDTimestampedBase",
]
