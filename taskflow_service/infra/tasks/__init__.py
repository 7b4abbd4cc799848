"""Job queue infrastructure using Taskiq.

- queue.py: Job, JobOptions, the JobQueue protocol and enqueue_with_retry
- taskiq_queue.py: JobQueue over a taskiq task
- broker.py: Taskiq broker configuration (taskiq-aio-pika for RabbitMQ)
- middleware.py: Job lifecycle logging
- scheduler.py: APScheduler integration for the overdue scan

The broker is not imported here; it reads settings and registers task
modules at import time. Import ``taskflow_service.infra.tasks.broker``
explicitly where a live broker is needed.

Run the worker to execute jobs:
    taskiq worker taskflow_service.infra.tasks.broker:broker
"""

from __future__ import annotations

from taskflow_service.infra.tasks.queue import (
    OVERDUE_NOTIFICATION_OPTIONS,
    STATUS_UPDATE_OPTIONS,
    BackoffPolicy,
    Job,
    JobName,
    JobOptions,
    JobQueue,
    QueueUnavailableError,
    enqueue_with_retry,
)
from taskflow_service.infra.tasks.taskiq_queue import TaskiqJobQueue, job_labels

__all__ = [
    "OVERDUE_NOTIFICATION_OPTIONS",
    "STATUS_UPDATE_OPTIONS",
    "BackoffPolicy",
    "Job",
    "JobName",
    "JobOptions",
    "JobQueue",
    "QueueUnavailableError",
    "TaskiqJobQueue",
    "enqueue_with_retry",
    "job_labels",
]
