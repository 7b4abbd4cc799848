"""Unit tests for the taskiq job logging middleware and message mapping."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest
from taskiq import InMemoryBroker, TaskiqMessage, TaskiqResult

from taskflow_service.core.settings import clear_all_caches
from taskflow_service.infra.tasks.middleware import (
    RETAIN_ON_FAIL_LABEL,
    BackoffRetryMiddleware,
    JobLoggingMiddleware,
)
from taskflow_service.infra.tasks.queue import (
    OVERDUE_NOTIFICATION_OPTIONS,
    STATUS_UPDATE_OPTIONS,
    BackoffPolicy,
    JobName,
    JobOptions,
)
from taskflow_service.infra.tasks.taskiq_queue import job_labels
from taskflow_service.workers.tasks import tasks as pipeline_tasks
from taskflow_service.workers.tasks.tasks import PIPELINE_TASK_NAME, get_job_queue, job_from_message

MIDDLEWARE_LOGGER = "taskflow_service.infra.tasks.middleware"


def _message(labels: dict | None = None, payload: dict | None = None) -> TaskiqMessage:
    return TaskiqMessage(
        task_id="job-42",
        task_name=PIPELINE_TASK_NAME,
        labels=labels or {},
        args=[],
        kwargs={"job_name": JobName.OVERDUE_TASKS_NOTIFICATION, "payload": payload or {"tasks": []}},
    )


def _labels(options: JobOptions, **extra: object) -> dict[str, str]:
    """Labels as they arrive at the worker, stringified by serialization."""
    return {key: str(value) for key, value in {**job_labels(options), **extra}.items()}


def _result(*, error: Exception | None = None, value: object = None) -> TaskiqResult:
    return TaskiqResult(
        is_err=error is not None,
        return_value=value,
        execution_time=0.01,
        error=error,
    )


@pytest.mark.unit
class TestJobLoggingMiddleware:
    """Test suite for JobLoggingMiddleware."""

    @pytest.mark.asyncio
    async def test_logs_start_and_completion(self, caplog: pytest.LogCaptureFixture):
        """Test that a successful job logs start and completion with its name."""
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)
        middleware = JobLoggingMiddleware()
        message = _message()

        assert await middleware.pre_execute(message) is message
        await middleware.post_execute(message, _result(value={"success": True, "processedCount": 0}))

        messages = [r.getMessage() for r in caplog.records if r.name == MIDDLEWARE_LOGGER]
        assert messages == ["Job started", "Job completed"]
        assert caplog.records[-1].job_name == JobName.OVERDUE_TASKS_NOTIFICATION

    @pytest.mark.asyncio
    async def test_failure_result_logs_warning(self, caplog: pytest.LogCaptureFixture):
        """Test that a success=False result is logged as a warning with its error."""
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)
        middleware = JobLoggingMiddleware()
        message = _message()

        await middleware.pre_execute(message)
        await middleware.post_execute(message, _result(value={"success": False, "error": "Unknown job type"}))

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.error == "Unknown job type"

    @pytest.mark.asyncio
    async def test_retained_job_error_logs_payload(self, caplog: pytest.LogCaptureFixture):
        """Test that a raising job kept on failure has its payload logged."""
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)
        middleware = JobLoggingMiddleware()
        payload = {"tasks": [{"taskId": "t1"}]}
        message = _message(labels={RETAIN_ON_FAIL_LABEL: "True", "_retries": "2"}, payload=payload)

        await middleware.post_execute(message, _result(error=RuntimeError("db down")))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.payload == payload
        assert record.attempts_made == 2
        assert record.duration_ms == 0

    @pytest.mark.asyncio
    async def test_dropped_job_error_omits_payload(self, caplog: pytest.LogCaptureFixture):
        """Test that jobs removed on failure do not log their payload."""
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)
        middleware = JobLoggingMiddleware()

        await middleware.post_execute(_message(), _result(error=RuntimeError("db down")))

        assert not hasattr(caplog.records[-1], "payload")


@pytest.mark.unit
class TestJobFromMessage:
    """Test suite for rebuilding a Job from a delivered message."""

    def test_first_delivery(self):
        """Test that a message without retry labels is attempt zero."""
        job = job_from_message("task-status-update", {"taskId": "t1"}, _message())

        assert job.id == "job-42"
        assert job.name == "task-status-update"
        assert job.data == {"taskId": "t1"}
        assert job.attempts_made == 0
        assert job.options.attempts == 3
        assert job.options.remove_on_fail is True

    def test_redelivery_labels(self):
        """Test that _retries, max_retries and the retain label are read back."""
        message = _message(labels={"_retries": "2", "max_retries": "5", RETAIN_ON_FAIL_LABEL: "True"})

        job = job_from_message("overdue-tasks-notification", {"tasks": []}, message)

        assert job.attempts_made == 2
        assert job.options.attempts == 5
        assert job.options.remove_on_fail is False

    def test_get_job_queue_requires_broker(self):
        """Test that enqueueing without RabbitMQ configured fails loudly."""
        with pytest.raises(RuntimeError, match="not configured"):
            get_job_queue()

    def test_backoff_policy_is_read_back(self):
        """Test that the job's backoff policy survives the trip through labels."""
        message = _message(labels=_labels(OVERDUE_NOTIFICATION_OPTIONS))

        job = job_from_message("overdue-tasks-notification", {"tasks": []}, message)

        assert job.options.backoff == BackoffPolicy("exponential", 1000)
        assert job_from_message("task-status-update", {}, _message()).options.backoff is None


@pytest.mark.unit
class TestBackoffRetryMiddleware:
    """Test suite for redelivery delays driven by job backoff labels."""

    def test_fixed_policy_keeps_delay_constant(self):
        """Test that a fixed backoff redelivers after the same delay every time."""
        middleware = BackoffRetryMiddleware(default_delay=5.0, max_delay_exponent=30.0)
        options = JobOptions(attempts=5, backoff=BackoffPolicy(type="fixed", delay_ms=1000))
        message = _message(labels=_labels(options))

        assert [middleware.make_delay(message, r) for r in (1, 2, 3, 4)] == [1.0, 1.0, 1.0, 1.0]

    def test_exponential_policy_doubles(self):
        """Test that an exponential backoff doubles the job's own base delay."""
        middleware = BackoffRetryMiddleware(default_delay=5.0, max_delay_exponent=30.0)
        options = JobOptions(attempts=5, backoff=BackoffPolicy(type="exponential", delay_ms=1000))
        message = _message(labels=_labels(options))

        assert [middleware.make_delay(message, r) for r in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_jobs_without_policy_use_default_delay(self):
        """Test that status jobs back off exponentially from the middleware default."""
        middleware = BackoffRetryMiddleware(default_delay=0.5, max_delay_exponent=30.0)
        message = _message(labels=_labels(STATUS_UPDATE_OPTIONS))

        assert [middleware.make_delay(message, r) for r in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_delay_is_capped(self):
        """Test that no redelivery waits longer than the configured cap."""
        middleware = BackoffRetryMiddleware(default_delay=1.0, max_delay_exponent=3.0)
        options = JobOptions(attempts=10, backoff=BackoffPolicy(type="exponential", delay_ms=1000))

        assert middleware.make_delay(_message(labels=_labels(options)), 6) == 3.0

    @pytest.mark.asyncio
    async def test_redeliveries_use_policy_not_previous_delay(self):
        """Test that on_error schedules each redelivery from the policy base."""
        middleware = BackoffRetryMiddleware(default_delay=5.0, max_delay_exponent=30.0)
        middleware.set_broker(InMemoryBroker())
        middleware.on_send = AsyncMock()
        options = JobOptions(attempts=4, backoff=BackoffPolicy(type="fixed", delay_ms=2000))

        for retries in range(3):
            # the previous redelivery leaves its computed delay behind as a label
            message = _message(labels=_labels(options, _retries=retries, delay=2.0 * (retries + 1)))
            await middleware.on_error(message, _result(error=RuntimeError("db down")), RuntimeError("db down"))

        assert [c.args[2] for c in middleware.on_send.await_args_list] == [2.0, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_stops_at_max_retries(self):
        """Test that no redelivery is scheduled once max_retries is reached."""
        middleware = BackoffRetryMiddleware()
        middleware.set_broker(InMemoryBroker())
        middleware.on_send = AsyncMock()
        message = _message(labels=_labels(OVERDUE_NOTIFICATION_OPTIONS, _retries=2))

        await middleware.on_error(message, _result(error=RuntimeError("x")), RuntimeError("x"))

        middleware.on_send.assert_not_awaited()


@pytest.mark.unit
class TestPrepareWorker:
    """Test suite for worker startup."""

    @pytest.mark.asyncio
    async def test_logs_configured_concurrency(
        self,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ):
        """Test that startup reports PIPELINE_WORKER_CONCURRENCY, not a fixed value."""
        monkeypatch.setenv("PIPELINE_WORKER_CONCURRENCY", "7")
        clear_all_caches()
        init_database = AsyncMock()
        monkeypatch.setattr(pipeline_tasks, "init_database", init_database)
        caplog.set_level(logging.INFO, logger=pipeline_tasks.__name__)

        try:
            await pipeline_tasks.prepare_worker()
        finally:
            clear_all_caches()

        init_database.assert_awaited_once()
        record = next(r for r in caplog.records if r.getMessage() == "Pipeline worker ready")
        assert record.concurrency == 7
