"""Scheduled producer that fans overdue pending tasks into batch jobs."""

from __future__ import annotations

from datetime import UTC, datetime
from itertools import batched
from typing import TYPE_CHECKING

from taskflow_service.core.services.base import BaseService
from taskflow_service.core.settings import get_pipeline_settings
from taskflow_service.features.tasks.repository import TaskRepository
from taskflow_service.features.tasks.schemas import (
    OverdueNotificationPayload,
    OverdueTaskSummary,
    ScanResult,
)
from taskflow_service.infra.database.session import unit_of_work
from taskflow_service.infra.tasks.queue import OVERDUE_NOTIFICATION_OPTIONS, JobName

if TYPE_CHECKING:
    from collections.abc import Callable

    from taskflow_service.infra.database.session import SessionFactory
    from taskflow_service.infra.tasks.queue import JobQueue


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OverdueScanner(BaseService):
    """Finds PENDING tasks past due and enqueues them in ordered batches.

    ``check_overdue_tasks`` never raises. A query or enqueue error is
    logged and ends the run early; the next scheduled tick retries.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        queue: JobQueue,
        repository: TaskRepository | None = None,
        *,
        batch_size: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._queue = queue
        self._repository = repository or TaskRepository()
        self._batch_size = batch_size or get_pipeline_settings().batch_size
        self._clock = clock

    async def check_overdue_tasks(self) -> ScanResult:
        result = ScanResult()
        now = self._clock()
        self.logger.info(
            "Checking for overdue tasks",
            extra={"as_of": now.isoformat(), "operation": "scanner.check_overdue_tasks"},
        )

        try:
            async with unit_of_work(self._session_factory) as session:
                rows = await self._repository.find_overdue_pending_summaries(session, as_of=now)
        except Exception as exc:
            self.logger.exception(
                "Overdue task query failed",
                extra={"error": str(exc), "operation": "scanner.check_overdue_tasks"},
            )
            result.error = str(exc)
            return result

        result.found = len(rows)
        if not rows:
            self.logger.info(
                "No overdue tasks found",
                extra={"operation": "scanner.check_overdue_tasks"},
            )
            return result

        for index, chunk in enumerate(batched(rows, self._batch_size)):
            payload = OverdueNotificationPayload(
                tasks=[
                    OverdueTaskSummary(task_id=str(row.id), title=row.title, due_date=row.due_date)
                    for row in chunk
                ]
            )
            try:
                job_id = await self._queue.enqueue(
                    JobName.OVERDUE_TASKS_NOTIFICATION,
                    payload.to_wire(),
                    OVERDUE_NOTIFICATION_OPTIONS,
                )
            except Exception as exc:
                self.logger.exception(
                    "Failed to enqueue overdue batch",
                    extra={
                        "batch_index": index,
                        "batch_size": len(chunk),
                        "batches_enqueued": result.batches_enqueued,
                        "error": str(exc),
                        "operation": "scanner.check_overdue_tasks",
                    },
                )
                result.error = str(exc)
                return result

            result.batches_enqueued += 1
            result.job_ids.append(job_id)
            self._lazy.debug(lambda: f"scanner: batch {index} ({len(chunk)} tasks) -> job {job_id}")

        self.logger.info(
            "Overdue tasks enqueued",
            extra={
                "found": result.found,
                "batches": result.batches_enqueued,
                "operation": "scanner.check_overdue_tasks",
            },
        )
        return result


__all__ = ["OverdueScanner"]
