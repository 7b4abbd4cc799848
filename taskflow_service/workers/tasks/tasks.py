"""Taskiq task that feeds delivered pipeline jobs to the TaskProcessor.

Every pipeline job is a kick of ``process_pipeline_job`` carrying the job
name and payload. The redelivery count travels in the ``_retries`` label
set by the retry middleware and becomes ``Job.attempts_made``.

Run the worker (concurrency from ``PIPELINE_WORKER_CONCURRENCY``):
    taskflow worker
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from taskiq import Context, TaskiqDepends, TaskiqEvents, TaskiqState

from taskflow_service.infra.database.session import (
    AsyncSessionLocal,
    close_database,
    init_database,
)
from taskflow_service.infra.tasks.broker import broker
from taskflow_service.core.settings import get_pipeline_settings
from taskflow_service.infra.tasks.middleware import RETAIN_ON_FAIL_LABEL, backoff_from_labels
from taskflow_service.infra.tasks.queue import Job, JobOptions
from taskflow_service.infra.tasks.taskiq_queue import TaskiqJobQueue
from taskflow_service.workers.tasks.processor import TaskProcessor

if TYPE_CHECKING:
    from taskiq import TaskiqMessage

logger = logging.getLogger(__name__)

PIPELINE_TASK_NAME = "taskflow.process_pipeline_job"


def job_from_message(job_name: str, payload: dict[str, Any], message: TaskiqMessage) -> Job:
    """Rebuild the delivered ``Job`` from a taskiq message."""
    labels = message.labels
    return Job(
        id=message.task_id,
        name=job_name,
        data=dict(payload or {}),
        attempts_made=int(labels.get("_retries", 0)),
        options=JobOptions(
            attempts=int(labels.get("max_retries", JobOptions().attempts)),
            backoff=backoff_from_labels(labels),
            remove_on_fail=str(labels.get(RETAIN_ON_FAIL_LABEL, "")).lower() != "true",
        ),
    )


async def prepare_worker() -> None:
    """Open the database and announce the worker's configured concurrency."""
    await init_database()
    logger.info("Pipeline worker ready", extra={"concurrency": get_pipeline_settings().worker_concurrency})


@lru_cache(maxsize=1)
def get_processor() -> TaskProcessor:
    """Processor bound to the worker's session factory."""
    return TaskProcessor(AsyncSessionLocal)


if broker is not None:

    @broker.on_event(TaskiqEvents.WORKER_STARTUP)
    async def _on_worker_startup(state: TaskiqState) -> None:
        await prepare_worker()

    @broker.on_event(TaskiqEvents.WORKER_SHUTDOWN)
    async def _on_worker_shutdown(state: TaskiqState) -> None:
        await close_database()

    @broker.task(task_name=PIPELINE_TASK_NAME, retry_on_error=True)
    async def process_pipeline_job(
        job_name: str,
        payload: dict[str, Any],
        context: Context = TaskiqDepends(),
        processor: TaskProcessor = TaskiqDepends(get_processor),
    ) -> dict[str, Any]:
        """Process one pipeline job; raising asks the broker to redeliver."""
        job = job_from_message(job_name, payload, context.message)
        result = await processor.process(job)
        return result.to_dict()


def get_job_queue() -> TaskiqJobQueue:
    """JobQueue that kicks ``process_pipeline_job`` on the configured broker.

    Raises:
        RuntimeError: If RabbitMQ is not configured
    """
    if broker is None:
        msg = "Taskiq broker not configured; set RABBIT_* settings to enqueue jobs"
        raise RuntimeError(msg)
    return TaskiqJobQueue(process_pipeline_job)
