"""Unit tests for application and repository exceptions."""

from __future__ import annotations

import pytest

from taskflow_service.core.database import NotFoundError
from taskflow_service.core.exceptions import (
    AppException,
    BatchProcessingError,
    NotFoundException,
    ValidationException,
)


@pytest.mark.unit
class TestAppExceptions:
    """Test suite for RFC 7807 shaped exceptions."""

    def test_not_found_problem_details(self):
        """Test that NotFoundException renders a 404 problem with extras."""
        exc = NotFoundException(
            detail="Task with ID abc not found",
            type="task-not-found",
            extra={"task_id": "abc"},
        )

        assert exc.to_problem() == {
            "type": "task-not-found",
            "title": "Not Found",
            "status": 404,
            "detail": "Task with ID abc not found",
            "task_id": "abc",
        }

    def test_validation_exception_status(self):
        """Test that ValidationException maps to 422."""
        exc = ValidationException(detail="bad status")

        assert exc.status_code == 422
        assert exc.title == "Validation Error"

    def test_batch_processing_error_keeps_cause(self):
        """Test that the generic batch error exposes the original cause via chaining."""
        cause = RuntimeError("connection reset")

        with pytest.raises(BatchProcessingError) as exc_info:
            raise BatchProcessingError(extra={"action": "delete"}) from cause

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Batch processing failed"
        assert exc_info.value.__cause__ is cause

    def test_default_title_for_unknown_status(self):
        """Test that unmapped status codes get a generic title."""
        assert AppException(status_code=418, detail="teapot").title == "Error"


@pytest.mark.unit
class TestRepositoryExceptions:
    """Test suite for repository errors."""

    def test_not_found_error_message(self):
        """Test that NotFoundError names the model and identifier."""
        exc = NotFoundError("Task", {"id": 7})

        assert str(exc) == "Task not found with id=7"
        assert exc.model_name == "Task"
        assert exc.identifier == {"id": 7}
