"""Application exceptions.

Shaped after RFC 7807 problem details so the HTTP layer can render them
directly: not-found maps to 404, validation to 422 and unhandled pipeline
failures to a redacted 500.
"""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        extra: Additional context-specific information about the error.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        titles = {
            400: "Bad Request",
            404: "Not Found",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")

    def to_problem(self) -> dict[str, Any]:
        """Render as an RFC 7807 problem details mapping."""
        return {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            **self.extra,
        }


class NotFoundException(AppException):
    """Raised when a task (or other resource) does not exist.

    Example:
            raise NotFoundException(
            detail="Task with ID abc123 not found",
            type="task-not-found",
            extra={"task_id": "abc123"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(status_code=404, detail=detail, type=type, title="Not Found", extra=extra)


class ValidationException(AppException):
    """Raised for malformed input such as an unknown status value."""

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=422,
            detail=detail,
            type=type,
            title="Validation Error",
            extra=extra,
        )


class BatchProcessingError(AppException):
    """Raised when a batch operation's shared transaction cannot be committed.

    The underlying cause is kept on ``__cause__``; the detail stays generic.
    """

    def __init__(self, extra: dict[str, Any] | None = None) -> None:
        super().__init__(
            status_code=500,
            detail="Batch processing failed",
            type="batch-processing-failed",
            extra=extra,
        )


__all__ = [
    "AppException",
    "BatchProcessingError",
    "NotFoundException",
    "ValidationException",
]
