"""Service layer for task business logic.

Each mutating operation runs in its own unit of work. When a task's status
changes, a ``task-status-update`` job is enqueued before the commit. The
enqueue is best-effort: a queue failure is logged and the task mutation
still commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from taskflow_service.core.database import NotFoundError
from taskflow_service.core.exceptions import BatchProcessingError, NotFoundException
from taskflow_service.core.services.base import BaseService
from taskflow_service.core.settings import get_pipeline_settings
from taskflow_service.features.tasks.models import Task, TaskStatus
from taskflow_service.features.tasks.repository import TaskRepository
from taskflow_service.features.tasks.schemas import (
    BatchItemResult,
    StatusUpdatePayload,
    TaskPage,
    TaskStats,
)
from taskflow_service.infra.database.session import unit_of_work
from taskflow_service.infra.tasks.queue import (
    STATUS_UPDATE_OPTIONS,
    JobName,
    enqueue_with_retry,
)
from taskflow_service.utils.updates import apply_updates

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from taskflow_service.features.tasks.schemas import (
        BatchOperation,
        TaskCreate,
        TaskFilter,
        TaskUpdate,
    )
    from taskflow_service.infra.database.session import SessionFactory
    from taskflow_service.infra.tasks.queue import JobQueue


def _not_found(task_id: UUID) -> NotFoundException:
    return NotFoundException(
        detail=f"Task with ID {task_id} not found",
        type="task-not-found",
        extra={"task_id": str(task_id)},
    )


class TasksService(BaseService):
    """Orchestrates task mutations and their status-update jobs."""

    def __init__(
        self,
        session_factory: SessionFactory,
        queue: JobQueue,
        repository: TaskRepository | None = None,
        *,
        enqueue_attempts: int | None = None,
        enqueue_backoff_ms: int | None = None,
    ) -> None:
        super().__init__()
        settings = get_pipeline_settings()
        self._session_factory = session_factory
        self._queue = queue
        self._repository = repository or TaskRepository()
        self._enqueue_attempts = enqueue_attempts or settings.enqueue_attempts
        self._enqueue_backoff_ms = (
            settings.enqueue_backoff_ms if enqueue_backoff_ms is None else enqueue_backoff_ms
        )

    async def _notify_status(self, task: Task, *, operation: str) -> bool:
        """Best-effort enqueue of a status-update job; never raises."""
        payload = StatusUpdatePayload(task_id=str(task.id), status=task.status)
        try:
            job_id = await enqueue_with_retry(
                self._queue,
                JobName.TASK_STATUS_UPDATE,
                payload.to_wire(),
                options=STATUS_UPDATE_OPTIONS,
                attempts=self._enqueue_attempts,
                backoff_ms=self._enqueue_backoff_ms,
            )
        except Exception as exc:
            self.logger.error(
                "Failed to enqueue status update after retries",
                extra={
                    "task_id": str(task.id),
                    "status": str(task.status),
                    "error": str(exc),
                    "operation": operation,
                },
            )
            return False

        self._lazy.debug(lambda: f"{operation}: status job {job_id} for Task({task.id})")
        return True

    async def create(self, payload: TaskCreate) -> Task:
        """Persist a new task and announce its initial status."""
        async with unit_of_work(self._session_factory) as session:
            task = await self._repository.create(session, Task(**payload.model_dump()))
            await self._notify_status(task, operation="service.create")

        # INFO level - business event (audit trail)
        self.logger.info(
            "Task created",
            extra={
                "task_id": str(task.id),
                "status": str(task.status),
                "has_due_date": task.due_date is not None,
                "operation": "service.create",
            },
        )
        return task

    async def update(self, task_id: UUID, patch: TaskUpdate) -> Task:
        """Apply a partial update; enqueue a status job only if the status changed.

        Raises:
            NotFoundException: If the task doesn't exist
        """
        async with unit_of_work(self._session_factory) as session:
            task = await self._repository.get(session, task_id)
            if task is None:
                raise _not_found(task_id)

            original_status = task.status
            result = apply_updates(task, patch, exclude={"id", "user_id", "created_at"})
            if result.applied:
                await session.flush()

            status_changed = task.status != original_status
            if status_changed:
                await self._notify_status(task, operation="service.update")

        if result.applied:
            self.logger.info(
                "Task updated",
                extra={
                    "task_id": str(task_id),
                    "fields": sorted(result.changes),
                    "status_changed": status_changed,
                    "operation": "service.update",
                },
            )
        else:
            self._lazy.debug(lambda: f"service.update({task_id}) -> no changes")
        return task

    async def remove(self, task_id: UUID) -> None:
        """Delete a task.

        Raises:
            NotFoundException: If the task doesn't exist
        """
        async with unit_of_work(self._session_factory) as session:
            task = await self._repository.get(session, task_id)
            if task is None:
                raise _not_found(task_id)
            await self._repository.delete(session, task)

        self.logger.info(
            "Task removed",
            extra={"task_id": str(task_id), "operation": "service.remove"},
        )

    async def _apply_batch_action(
        self,
        session: AsyncSession,
        task_id: UUID,
        action: str,
    ) -> dict[str, Any]:
        task = await self._repository.get(session, task_id)
        if task is None:
            raise NotFoundError("Task", {"id": task_id})

        if action == "complete":
            task.status = TaskStatus.COMPLETED
            await session.flush()
            await self._notify_status(task, operation="service.batch_process")
            return {"id": str(task.id), "status": str(task.status)}

        await self._repository.delete(session, task)
        return {"id": str(task_id), "deleted": True}

    async def batch_process(self, operation: BatchOperation) -> list[BatchItemResult]:
        """Apply ``complete`` or ``delete`` to each task id in one shared transaction.

        A failing item is recorded in its result and does not stop the
        remaining items. Only a failure to commit the shared transaction
        aborts the whole batch.

        Raises:
            BatchProcessingError: If the shared transaction could not be committed
        """
        results: list[BatchItemResult] = []
        try:
            async with unit_of_work(self._session_factory) as session:
                for task_id in operation.task_ids:
                    try:
                        outcome = await self._apply_batch_action(session, task_id, operation.action)
                    except NotFoundError:
                        results.append(
                            BatchItemResult(
                                task_id=task_id,
                                success=False,
                                error=f"Task {task_id} not found",
                            )
                        )
                    except Exception as exc:
                        results.append(
                            BatchItemResult(task_id=task_id, success=False, error=str(exc))
                        )
                    else:
                        results.append(BatchItemResult(task_id=task_id, success=True, result=outcome))
        except Exception as exc:
            self.logger.exception(
                "Batch processing failed",
                extra={
                    "action": operation.action,
                    "count": len(operation.task_ids),
                    "operation": "service.batch_process",
                },
            )
            raise BatchProcessingError(extra={"action": operation.action}) from exc

        self.logger.info(
            "Batch processed",
            extra={
                "action": operation.action,
                "succeeded": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
                "operation": "service.batch_process",
            },
        )
        return results

    async def find_all(self, filters: TaskFilter) -> TaskPage:
        """List tasks matching ``filters`` as a page envelope."""
        async with unit_of_work(self._session_factory) as session:
            found = await self._repository.search(
                session,
                self._repository.filter_statement(filters),
                limit=filters.limit,
                offset=filters.offset,
            )

        page_count = (found.total + filters.limit - 1) // filters.limit
        self._lazy.debug(
            lambda: f"service.find_all(page={filters.page}, limit={filters.limit}) -> {len(found.items)}/{found.total}"
        )
        return TaskPage(items=found.items, total=found.total, page=filters.page, page_count=page_count)

    async def find_one(self, task_id: UUID) -> Task:
        """Fetch a task.

        Raises:
            NotFoundException: If the task doesn't exist
        """
        async with unit_of_work(self._session_factory) as session:
            task = await self._repository.get(session, task_id)
        if task is None:
            raise _not_found(task_id)
        return task

    async def find_by_status(self, status: TaskStatus) -> Sequence[Task]:
        async with unit_of_work(self._session_factory) as session:
            return await self._repository.find_by_status(session, status)

    async def find_overdue_tasks(self, limit: int, offset: int = 0) -> Sequence[Task]:
        async with unit_of_work(self._session_factory) as session:
            return await self._repository.find_overdue_tasks(session, limit, offset)

    async def update_status(self, task_id: UUID, status: TaskStatus) -> Task:
        """Set a task's status in its own transaction without enqueueing a job.

        Raises:
            NotFoundException: If the task doesn't exist
        """
        try:
            async with unit_of_work(self._session_factory) as session:
                return await self.update_status_with_session(session, task_id, status)
        except NotFoundError as exc:
            raise _not_found(task_id) from exc

    async def update_status_with_session(
        self,
        session: AsyncSession,
        task_id: UUID,
        status: TaskStatus,
    ) -> Task:
        """Set a task's status inside a caller-owned transaction.

        Raises:
            NotFoundError: If the task doesn't exist
        """
        task = await self._repository.update_status(session, task_id, status)
        self.logger.info(
            "Task status set",
            extra={"task_id": str(task_id), "status": str(status), "operation": "service.update_status"},
        )
        return task

    async def get_stats(self) -> TaskStats:
        async with unit_of_work(self._session_factory) as session:
            counts = await self._repository.get_stats(session)
        return TaskStats(**counts)


__all__ = ["TasksService"]
