"""Unit tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from logging.handlers import QueueHandler

import pytest

from taskflow_service.infra.logging import JSONFormatter, configure_logging, get_lazy_logger, shutdown


def _record(msg: str = "Task created", **extra) -> logging.LogRecord:
    record = logging.LogRecord("TasksService", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_emits_one_json_object_with_extras(self):
        """Test that extra fields become top-level keys next to the static fields."""
        formatter = JSONFormatter(static={"service": "taskflow-service"})

        line = formatter.format(_record(task_id="t1", operation="service.create"))
        data = json.loads(line)

        assert "\n" not in line
        assert data["level"] == "INFO"
        assert data["logger"] == "TasksService"
        assert data["message"] == "Task created"
        assert data["service"] == "taskflow-service"
        assert data["task_id"] == "t1"
        assert data["operation"] == "service.create"
        assert data["timestamp"].endswith("Z")

    def test_serializes_non_json_values(self):
        """Test that values such as sets fall back to str()."""
        data = json.loads(JSONFormatter().format(_record(ids={"a"})))

        assert data["ids"] == "{'a'}"


@pytest.mark.unit
class TestLazyLogger:
    """Test suite for the lazy DEBUG logger."""

    def test_callable_not_evaluated_when_disabled(self):
        """Test that DEBUG callables are skipped when DEBUG is off."""
        logger = get_lazy_logger("lazy-test-disabled")
        logger.logger.setLevel(logging.INFO)
        calls: list[int] = []

        logger.debug(lambda: calls.append(1) or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture):
        """Test that DEBUG callables are resolved when DEBUG is on."""
        caplog.set_level(logging.DEBUG, logger="lazy-test-enabled")
        logger = get_lazy_logger("lazy-test-enabled")

        logger.debug(lambda: "page ids: [1, 2]")

        assert caplog.records[-1].getMessage() == "page ids: [1, 2]"


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for queue-based logging configuration."""

    def test_reconfigure_keeps_single_queue_handler(self):
        """Test that configuring twice does not stack QueueHandlers on root."""
        try:
            configure_logging(log_level="INFO", json_logs=True)
            configure_logging(log_level="DEBUG", json_logs=False)

            root = logging.getLogger()
            queue_handlers = [h for h in root.handlers if isinstance(h, QueueHandler)]
            assert len(queue_handlers) == 1
            assert root.level == logging.DEBUG
        finally:
            configure_logging(log_level="INFO", json_logs=False)
            shutdown()
