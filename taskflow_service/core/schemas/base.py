"""Base schema classes for read models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CustomBase(BaseModel):
    """Base model with common configuration for read schemas.

    Example:
        class TaskRead(CustomBase):
            id: UUID
            title: str
            created_at: datetime
    """

    model_config = ConfigDict(
        # Allow creation from ORM models (SQLAlchemy)
        from_attributes=True,
        # Use enum values instead of names
        use_enum_values=True,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )
