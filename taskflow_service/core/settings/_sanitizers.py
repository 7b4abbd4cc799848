"""Helpers to sanitize environment variable values before validation."""

from __future__ import annotations

from typing import Any


def strip_inline_comment(value: str) -> str:
    """Drop a trailing ``  # comment`` from an env value.

    Only a ``#`` preceded by whitespace starts a comment, so values such as
    ``queue#1`` pass through untouched.
    """
    idx = value.find("#")
    if idx == -1:
        return value.strip()
    if idx == 0:
        return ""
    if not value[idx - 1].isspace():
        return value.strip()
    return value[:idx].strip()


def sanitize_inline_numeric(value: Any) -> Any:
    """Normalize numeric env vars such as ``PIPELINE_BATCH_SIZE=100  # rows``."""
    if isinstance(value, str):
        cleaned = strip_inline_comment(value)
        if cleaned:
            return cleaned
    return value
