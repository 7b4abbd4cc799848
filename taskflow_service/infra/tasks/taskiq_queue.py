"""``JobQueue`` implementation backed by a taskiq task."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from taskflow_service.infra.tasks.middleware import (
    BACKOFF_DELAY_LABEL,
    BACKOFF_TYPE_LABEL,
    RETAIN_ON_FAIL_LABEL,
)
from taskflow_service.infra.tasks.queue import JobOptions, QueueUnavailableError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from taskiq import AsyncTaskiqDecoratedTask

logger = logging.getLogger(__name__)


def job_labels(options: JobOptions) -> dict[str, Any]:
    """Translate job options into labels read by the retry middleware.

    ``max_retries`` bounds total deliveries. A backoff policy travels as
    ``backoff_type`` and ``backoff_delay_ms`` for ``BackoffRetryMiddleware``;
    without one the middleware's default delay applies.
    """
    labels: dict[str, Any] = {
        "retry_on_error": options.attempts > 1,
        "max_retries": options.attempts,
    }
    if options.backoff is not None:
        labels[BACKOFF_TYPE_LABEL] = options.backoff.type
        labels[BACKOFF_DELAY_LABEL] = options.backoff.delay_ms
    if not options.remove_on_fail:
        labels[RETAIN_ON_FAIL_LABEL] = True
    return labels


class TaskiqJobQueue:
    """Enqueue pipeline jobs by kicking a single dispatching taskiq task.

    Every job travels as ``task(job_name=..., payload=...)`` so the worker
    needs exactly one registered task; dispatch by name happens in
    ``TaskProcessor``.
    """

    def __init__(self, task: AsyncTaskiqDecoratedTask[..., Any]) -> None:
        self._task = task

    async def enqueue(
        self,
        name: str,
        payload: Mapping[str, Any],
        options: JobOptions | None = None,
    ) -> str:
        labels = job_labels(options or JobOptions())
        try:
            handle = await self._task.kicker().with_labels(**labels).kiq(
                job_name=name,
                payload=dict(payload),
            )
        except Exception as exc:
            raise QueueUnavailableError(f"Failed to enqueue job {name}: {exc}") from exc

        logger.debug(
            "Job sent to broker",
            extra={"job_name": name, "job_id": handle.task_id, "labels": labels},
        )
        return handle.task_id
