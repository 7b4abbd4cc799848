"""Tasks feature: model, repository and the status-emitting service.

Example usage:
    from taskflow_service.features.tasks import TaskCreate, TasksService
    from taskflow_service.infra.database import AsyncSessionLocal

    service = TasksService(AsyncSessionLocal, queue)
    task = await service.create(TaskCreate(title="Write report", user_id=user_id))
"""

from taskflow_service.features.tasks.models import Task, TaskPriority, TaskStatus
from taskflow_service.features.tasks.repository import TaskRepository
from taskflow_service.features.tasks.schemas import (
    BatchItemResult,
    BatchOperation,
    JobResult,
    OverdueNotificationPayload,
    OverdueTaskSummary,
    ScanResult,
    StatusUpdatePayload,
    TaskCreate,
    TaskFilter,
    TaskPage,
    TaskRead,
    TaskStats,
    TaskUpdate,
)
from taskflow_service.features.tasks.service import TasksService

__all__ = [
    "BatchItemResult",
    "BatchOperation",
    "JobResult",
    "OverdueNotificationPayload",
    "OverdueTaskSummary",
    "ScanResult",
    "StatusUpdatePayload",
    "Task",
    "TaskCreate",
    "TaskFilter",
    "TaskPage",
    "TaskPriority",
    "TaskRead",
    "TaskRepository",
    "TaskStats",
    "TaskStatus",
    "TaskUpdate",
    "TasksService",
]
