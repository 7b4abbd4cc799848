"""Taskiq broker configuration for the task-status pipeline.

Jobs travel over RabbitMQ through ``taskiq-aio-pika``. Run the worker with:

    taskiq worker taskflow_service.infra.tasks.broker:broker --max-async-tasks 3

Middleware Stack
================

1. BackoffRetryMiddleware (outermost) - taskiq's SmartRetryMiddleware with
   the delay taken from the job's backoff labels. Honours ``retry_on_error``
   and ``max_retries``; jobs without a policy back off exponentially from
   ``PIPELINE_JOB_BACKOFF_DELAY_MS``. Delays are capped at
   ``PIPELINE_RETRY_BACKOFF_CAP_MS``. AioPikaBroker routes delayed
   redeliveries through its delay queue.
2. JobLoggingMiddleware - logs job start, completion and failure.

Task Discovery
==============

The pipeline task module is imported at the bottom of this file so that
``taskiq worker`` registers it when it loads the broker.
"""

from __future__ import annotations

import logging

from taskiq_aio_pika import AioPikaBroker

from taskflow_service.core.settings import get_pipeline_settings, get_rabbit_settings
from taskflow_service.infra.logging.config import setup_logging

logger = logging.getLogger(__name__)

rabbit_settings = get_rabbit_settings()
pipeline_settings = get_pipeline_settings()
setup_logging()

broker: AioPikaBroker | None = None


def _create_broker() -> AioPikaBroker:
    from taskflow_service.infra.tasks.middleware import BackoffRetryMiddleware, JobLoggingMiddleware

    queue_name = rabbit_settings.get_prefixed_queue(pipeline_settings.queue_name)
    return AioPikaBroker(
        url=rabbit_settings.get_url(),
        queue_name=queue_name,
        declare_exchange=True,
        declare_queues=True,
    ).with_middlewares(
        BackoffRetryMiddleware(
            default_retry_count=pipeline_settings.job_attempts,
            default_delay=pipeline_settings.job_backoff_delay_ms / 1000,
            max_delay_exponent=pipeline_settings.retry_backoff_cap_ms / 1000,
        ),
        JobLoggingMiddleware(),
    )


if rabbit_settings.is_configured:
    broker = _create_broker()
    logger.info(
        "Taskiq pipeline broker configured",
        extra={
            "queue": rabbit_settings.get_prefixed_queue(pipeline_settings.queue_name),
            "middlewares": ["BackoffRetryMiddleware", "JobLoggingMiddleware"],
        },
    )
else:
    logger.warning("RabbitMQ not configured - pipeline jobs disabled")


async def start_taskiq() -> None:
    """Start the broker so this process can enqueue jobs.

    Raises:
        ConnectionError: If unable to connect to RabbitMQ.
    """
    if broker is None:
        logger.warning("Taskiq broker not configured, skipping startup")
        return

    logger.info("Starting Taskiq broker")
    try:
        await broker.startup()
        logger.info("Taskiq broker started successfully")
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise


async def stop_taskiq() -> None:
    """Stop the broker, closing RabbitMQ connections."""
    if broker is None:
        logger.debug("Taskiq broker not configured, skipping shutdown")
        return

    logger.info("Stopping Taskiq broker")
    try:
        await broker.shutdown()
        logger.info("Taskiq broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})


if broker is not None:
    import taskflow_service.workers.tasks.tasks  # noqa: F401

    logger.debug("Pipeline task module registered with broker")
