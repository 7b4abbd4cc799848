"""Taskiq middleware for pipeline jobs: redelivery backoff and lifecycle logging."""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, Any

from taskiq import TaskiqMiddleware
from taskiq.middlewares import SmartRetryMiddleware

from taskflow_service.infra.tasks.queue import BackoffPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from taskiq import TaskiqMessage, TaskiqResult

logger = logging.getLogger(__name__)

RETAIN_ON_FAIL_LABEL = "retain_on_fail"
BACKOFF_TYPE_LABEL = "backoff_type"
BACKOFF_DELAY_LABEL = "backoff_delay_ms"


def backoff_from_labels(
    labels: Mapping[str, Any],
    default: BackoffPolicy | None = None,
) -> BackoffPolicy | None:
    """Read the job's backoff policy back from message labels.

    Label values arrive as strings once a message has been serialized.
    """
    backoff_type = labels.get(BACKOFF_TYPE_LABEL)
    if backoff_type is None:
        return default
    delay_ms = labels.get(BACKOFF_DELAY_LABEL, (default or BackoffPolicy()).delay_ms)
    return BackoffPolicy(
        type="fixed" if str(backoff_type) == "fixed" else "exponential",
        delay_ms=int(delay_ms),
    )


class BackoffRetryMiddleware(SmartRetryMiddleware):
    """``SmartRetryMiddleware`` whose redelivery delay follows the job's backoff.

    Jobs enqueued with a ``BackoffPolicy`` carry it in the ``backoff_type``
    and ``backoff_delay_ms`` labels. Jobs without one back off exponentially
    from ``default_delay``. Every delay is capped at ``max_delay_exponent``
    seconds. The ``delay`` label written on each redelivery is ignored so
    the base never compounds across attempts.
    """

    def make_delay(self, message: TaskiqMessage, retries: int) -> float:
        default = BackoffPolicy(type="exponential", delay_ms=int(self.default_delay * 1000))
        policy = backoff_from_labels(message.labels, default) or default
        delay = min(policy.delay_for(retries) / 1000, self.max_delay_exponent)
        if self.use_jitter:
            delay += random.random()  # noqa: S311
        return delay


def _job_fields(message: TaskiqMessage) -> dict[str, Any]:
    return {
        "task_id": message.task_id,
        "job_name": message.kwargs.get("job_name"),
        "attempts_made": int(message.labels.get("_retries", 0)),
    }


class JobLoggingMiddleware(TaskiqMiddleware):
    """Logs job start, completion and failure with duration.

    Jobs enqueued with ``remove_on_fail=False`` carry the ``retain_on_fail``
    label; when such a job fails its payload is logged at ERROR so it can
    be inspected after the queue has dropped it.

    Example usage:
        broker = AioPikaBroker(...).with_middlewares(JobLoggingMiddleware())
    """

    def __init__(self) -> None:
        super().__init__()
        self._start_times: dict[str, float] = {}

    async def shutdown(self) -> None:
        self._start_times.clear()

    async def pre_execute(
        self,
        message: TaskiqMessage,
    ) -> TaskiqMessage:
        self._start_times[message.task_id] = time.perf_counter()
        logger.info("Job started", extra=_job_fields(message))
        return message

    async def post_execute(
        self,
        message: TaskiqMessage,
        result: TaskiqResult[Any],
    ) -> None:
        start_time = self._start_times.pop(message.task_id, None)
        duration_ms = int((time.perf_counter() - start_time) * 1000) if start_time else 0
        fields = {**_job_fields(message), "duration_ms": duration_ms}

        if result.is_err:
            fields["error"] = str(result.error)
            if str(message.labels.get(RETAIN_ON_FAIL_LABEL, "")).lower() == "true":
                fields["payload"] = message.kwargs.get("payload")
            logger.error("Job raised, queue may redeliver", extra=fields)
            return

        return_value = result.return_value
        if isinstance(return_value, dict) and return_value.get("success") is False:
            fields["error"] = return_value.get("error")
            logger.warning("Job finished with failure result", extra=fields)
        else:
            logger.info("Job completed", extra=fields)
