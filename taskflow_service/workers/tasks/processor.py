"""Pipeline job processor.

Per job:
    RECEIVED -> (redelivery: DELAYED) -> DISPATCHED -> SUCCEEDED | FAILED-RETRYABLE | FAILED-TERMINAL

A handler exception is re-raised while the job still has redeliveries left,
so the queue's retry middleware schedules another attempt. Once
``attempts_made`` reaches ``max_retries`` the error is reported as a failed
``JobResult`` instead, which the queue treats as done.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from uuid import UUID

from taskflow_service.core.database import NotFoundError
from taskflow_service.core.services.base import BaseService
from taskflow_service.core.settings import get_pipeline_settings
from taskflow_service.features.tasks.models import TaskStatus
from taskflow_service.features.tasks.repository import TaskRepository
from taskflow_service.features.tasks.schemas import JobResult
from taskflow_service.infra.database.session import unit_of_work
from taskflow_service.infra.tasks.queue import JobName

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from taskflow_service.infra.database.session import SessionFactory
    from taskflow_service.infra.tasks.queue import Job

MISSING_DATA_ERROR = "Missing required data"
_VALID_STATUSES = tuple(s.value for s in TaskStatus)
INVALID_STATUS_ERROR = "Invalid status value. Must be one of: " + ", ".join(_VALID_STATUSES)
UNKNOWN_JOB_ERROR = "Unknown job type"


class TaskProcessor(BaseService):
    """Dispatches pipeline jobs by name, one unit of work per job."""

    def __init__(
        self,
        session_factory: SessionFactory,
        repository: TaskRepository | None = None,
        *,
        max_retries: int | None = None,
        batch_size: int | None = None,
        backoff_cap_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__()
        settings = get_pipeline_settings()
        self._session_factory = session_factory
        self._repository = repository or TaskRepository()
        self._max_retries = settings.max_retries if max_retries is None else max_retries
        self._batch_size = batch_size or settings.batch_size
        self._backoff_cap_ms = backoff_cap_ms or settings.retry_backoff_cap_ms
        self._sleep = sleep
        self._handlers: dict[str, Callable[[Job], Awaitable[JobResult]]] = {
            JobName.TASK_STATUS_UPDATE: self._handle_status_update,
            JobName.OVERDUE_TASKS_NOTIFICATION: self._handle_overdue_tasks,
        }

    def retry_delay_ms(self, attempts_made: int) -> int:
        """Pause before reprocessing a redelivered job: ``min(1000 * 2**n, cap)``."""
        return min(1000 * 2**attempts_made, self._backoff_cap_ms)

    async def process(self, job: Job) -> JobResult:
        """Process one delivered job.

        Raises:
            Exception: The handler's error, while redeliveries remain
        """
        if job.attempts_made > 0:
            delay_ms = self.retry_delay_ms(job.attempts_made)
            self.logger.warning(
                "Reprocessing redelivered job",
                extra={
                    "job_id": job.id,
                    "job_name": job.name,
                    "attempts_made": job.attempts_made,
                    "delay_ms": delay_ms,
                    "operation": "processor.process",
                },
            )
            await self._sleep(delay_ms / 1000)

        handler = self._handlers.get(job.name)
        if handler is None:
            self.logger.warning(
                "Unknown job type",
                extra={"job_id": job.id, "job_name": job.name, "operation": "processor.process"},
            )
            return JobResult.failure(UNKNOWN_JOB_ERROR)

        try:
            result = await handler(job)
        except Exception as exc:
            if job.attempts_made < self._max_retries:
                self.logger.warning(
                    "Job failed, requesting redelivery",
                    extra={
                        "job_id": job.id,
                        "job_name": job.name,
                        "attempts_made": job.attempts_made,
                        "error": str(exc),
                        "operation": "processor.process",
                    },
                )
                raise

            self.logger.error(
                "Job failed permanently",
                extra={
                    "job_id": job.id,
                    "job_name": job.name,
                    "attempts_made": job.attempts_made,
                    "error": str(exc),
                    "operation": "processor.process",
                },
            )
            return JobResult.failure(f"Job failed after {self._max_retries} retries: {exc}")

        self._lazy.debug(lambda: f"processor.process({job.name}, id={job.id}) -> {result.to_dict()}")
        return result

    async def _handle_status_update(self, job: Job) -> JobResult:
        task_id = job.data.get("taskId")
        status = job.data.get("status")
        if not task_id or not status:
            return JobResult.failure(MISSING_DATA_ERROR)
        if status not in _VALID_STATUSES:
            return JobResult.failure(INVALID_STATUS_ERROR)

        try:
            task_uuid = UUID(str(task_id))
        except ValueError:
            return JobResult.failure(f"Task {task_id} not found")

        try:
            async with unit_of_work(self._session_factory) as session:
                task = await self._repository.update_status(session, task_uuid, TaskStatus(status))
        except NotFoundError:
            # A missing task will not appear on redelivery
            self.logger.warning(
                "Status update for unknown task",
                extra={"task_id": str(task_id), "operation": "processor.status_update"},
            )
            return JobResult.failure(f"Task {task_id} not found")

        self.logger.info(
            "Task status applied",
            extra={
                "task_id": str(task.id),
                "status": str(task.status),
                "operation": "processor.status_update",
            },
        )
        return JobResult(success=True, task_id=str(task.id), new_status=task.status)

    async def _handle_overdue_tasks(self, job: Job) -> JobResult:
        """Page through currently overdue tasks and reset each page to PENDING.

        The job payload is informational; this handler re-queries the store.
        """
        processed_count = 0
        async with unit_of_work(self._session_factory) as session:
            while True:
                page = await self._repository.find_overdue_tasks(
                    session,
                    self._batch_size,
                    offset=processed_count,
                )
                if not page:
                    break

                await self._repository.reset_status(
                    session,
                    [task.id for task in page],
                    TaskStatus.PENDING,
                )
                processed_count += len(page)
                if len(page) < self._batch_size:
                    break

        self.logger.info(
            "Overdue tasks processed",
            extra={
                "job_id": job.id,
                "processed_count": processed_count,
                "operation": "processor.overdue_tasks",
            },
        )
        return JobResult(success=True, processed_count=processed_count)


__all__ = ["INVALID_STATUS_ERROR", "MISSING_DATA_ERROR", "UNKNOWN_JOB_ERROR", "TaskProcessor"]
