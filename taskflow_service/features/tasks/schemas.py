"""Pydantic schemas for the tasks feature and the pipeline job payloads."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskflow_service.core.schemas.base import CustomBase
from taskflow_service.features.tasks.models import TaskPriority, TaskStatus

if TYPE_CHECKING:
    from taskflow_service.features.tasks.models import Task


class TaskBase(BaseModel):
    """Shared attributes for task payloads."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None


class TaskCreate(TaskBase):
    """Payload used when creating a task."""

    user_id: UUID


class TaskUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None

    @field_validator("title", "status", "priority")
    @classmethod
    def reject_explicit_null(cls, v: Any) -> Any:
        """Omit a field to leave it unchanged; these columns cannot be cleared."""
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class TaskRead(CustomBase):
    id: UUID
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    user_id: UUID
    created_at: datetime
    updated_at: datetime


class TaskFilter(BaseModel):
    """Listing filters with page-based pagination."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    search_term: str | None = Field(
        default=None,
        min_length=2,
        description="Case-insensitive match on title or description",
    )
    user_id: UUID | None = None
    due_date_start: datetime | None = None
    due_date_end: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(slots=True, frozen=True)
class TaskPage:
    """Pagination envelope returned by ``TasksService.find_all``."""

    items: Sequence[Task]
    total: int
    page: int
    page_count: int


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    high_priority: int = 0


class BatchOperation(BaseModel):
    """Apply one action to many tasks inside a shared transaction."""

    task_ids: list[UUID] = Field(..., min_length=1)
    action: Literal["complete", "delete"]


class BatchItemResult(BaseModel):
    """Outcome for one task id of a batch operation."""

    task_id: UUID
    success: bool
    result: dict[str, Any] | None = None
    error: str | None = None


# ──────────────────────────────────────────────────────────────
# Job payloads (wire contract between producers and the worker)
# ──────────────────────────────────────────────────────────────


class StatusUpdatePayload(BaseModel):
    """``task-status-update`` payload: ``{taskId, status}``."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    status: TaskStatus

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class OverdueTaskSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId")
    title: str
    due_date: datetime = Field(alias="dueDate")


class OverdueNotificationPayload(BaseModel):
    """``overdue-tasks-notification`` payload: ``{tasks: [...]}`` (at most one batch)."""

    tasks: list[OverdueTaskSummary]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class JobResult(BaseModel):
    """Value a pipeline job returns to the queue.

    ``success=False`` results are terminal: the queue records the job as
    done and does not redeliver it.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error: str | None = None
    task_id: str | None = Field(default=None, alias="taskId")
    new_status: TaskStatus | None = Field(default=None, alias="newStatus")
    processed_count: int | None = Field(default=None, alias="processedCount")

    @classmethod
    def failure(cls, error: str) -> JobResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(slots=True)
class ScanResult:
    """Outcome of one overdue scan.

    ``error`` is set when the run ended early, which distinguishes a failed
    scan from one that simply found nothing.
    """

    found: int = 0
    batches_enqueued: int = 0
    job_ids: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
