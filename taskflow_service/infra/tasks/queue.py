"""Job queue contract shared by producers and the pipeline worker.

Producers (``TasksService``, ``OverdueScanner``) depend only on the
``JobQueue`` protocol; the taskiq-backed implementation lives in
``taskiq_queue.py`` so the contract can be faked in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, Protocol

from taskflow_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class JobName(StrEnum):
    """Names of the jobs the pipeline worker knows how to handle."""

    TASK_STATUS_UPDATE = "task-status-update"
    OVERDUE_TASKS_NOTIFICATION = "overdue-tasks-notification"


class QueueUnavailableError(Exception):
    """Raised when a job could not be durably accepted by the queue."""


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Queue-side redelivery backoff."""

    type: Literal["exponential", "fixed"] = "exponential"
    delay_ms: int = 1000

    def delay_for(self, attempt: int) -> int:
        """Delay in ms before redelivering after the 1-based ``attempt``."""
        if self.type == "fixed":
            return self.delay_ms
        return self.delay_ms * 2 ** max(attempt - 1, 0)


@dataclass(frozen=True, slots=True)
class JobOptions:
    attempts: int = 3
    backoff: BackoffPolicy | None = None
    remove_on_complete: bool = True
    remove_on_fail: bool = False


# Status updates are fire-and-mostly-forget; overdue batches stay on failure
STATUS_UPDATE_OPTIONS = JobOptions(attempts=3, remove_on_complete=True, remove_on_fail=True)
OVERDUE_NOTIFICATION_OPTIONS = JobOptions(
    attempts=3,
    backoff=BackoffPolicy(type="exponential", delay_ms=1000),
    remove_on_complete=True,
    remove_on_fail=False,
)


@dataclass(slots=True)
class Job:
    """A delivered job as seen by the worker."""

    id: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    attempts_made: int = 0
    options: JobOptions = field(default_factory=JobOptions)


class JobQueue(Protocol):
    """Durable queue accepting named jobs."""

    async def enqueue(
        self,
        name: str,
        payload: Mapping[str, Any],
        options: JobOptions | None = None,
    ) -> str:
        """Insert a job and return its id once the queue accepted it."""
        ...


async def enqueue_with_retry(
    queue: JobQueue,
    name: str,
    payload: Mapping[str, Any],
    *,
    options: JobOptions | None = None,
    attempts: int = 3,
    backoff_ms: int = 500,
) -> str:
    """Enqueue a job, retrying insertion with linear backoff.

    This is a client-side loop around a single insert and is independent
    of the queue's own redelivery policy carried in ``options``. After the
    i-th failed attempt the helper waits ``backoff_ms * i`` before trying
    again.

    Args:
        queue: Target queue.
        name: Job name.
        payload: Job payload.
        options: Queue-side job options.
        attempts: Maximum insertion attempts.
        backoff_ms: Linear backoff unit in milliseconds.

    Returns:
        The id of the accepted job.

    Raises:
        RetryError: Every attempt failed; ``last_exception`` holds the cause.
    """

    @retry(
        max_attempts=attempts,
        initial_delay=backoff_ms / 1000,
        max_delay=float("inf"),
        backoff="linear",
        jitter=False,
    )
    async def _enqueue() -> str:
        return await queue.enqueue(name, payload, options)

    job_id = await _enqueue()
    logger.debug("Job enqueued", extra={"job_name": name, "job_id": job_id})
    return job_id


__all__ = [
    "OVERDUE_NOTIFICATION_OPTIONS",
    "STATUS_UPDATE_OPTIONS",
    "BackoffPolicy",
    "Job",
    "JobName",
    "JobOptions",
    "JobQueue",
    "QueueUnavailableError",
    "enqueue_with_retry",
]
