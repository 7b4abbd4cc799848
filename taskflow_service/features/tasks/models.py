"""SQLAlchemy models for the tasks feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import DateTime, Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from taskflow_service.core.database import UUIDTimestampedBase


class TaskStatus(StrEnum):
    """Workflow status. Any status may follow any other."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Task(UUIDTimestampedBase):
    """Task owned by a user.

    ``user_id`` references the external users store; no foreign key is
    declared because that table is not managed here.
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_status_due_date", "status", "due_date"),)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="task_status", native_enum=False, length=20),
        default=TaskStatus.PENDING,
        nullable=False,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="task_priority", native_enum=False, length=10),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)

    def __repr__(self) -> str:
        return f"Task(id={self.id!s}, title={self.title!r}, status={self.status!s})"
