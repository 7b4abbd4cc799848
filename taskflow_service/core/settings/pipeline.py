"""Task-status pipeline settings.

Covers the job queue options used by producers, the processor's retry
ceiling and pacing, and the overdue scanner cadence.

Environment variables use PIPELINE_ prefix.
Example: PIPELINE_BATCH_SIZE=100
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric


class PipelineSettings(BaseSettings):
    """Job queue, processor and scanner configuration."""

    # ──────────────────────────────────────────────────────────────
    # Queue
    # ──────────────────────────────────────────────────────────────

    queue_name: str = Field(
        default="task-processing",
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Queue that carries both pipeline job types",
    )

    job_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Queue-level delivery attempts per job",
    )

    job_backoff_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60_000,
        description="Base delay for the queue's exponential redelivery backoff",
    )

    # ──────────────────────────────────────────────────────────────
    # Producer-side enqueue retry
    # ──────────────────────────────────────────────────────────────

    enqueue_attempts: int = Field(default=3, ge=1, le=10)

    enqueue_backoff_ms: int = Field(
        default=500,
        ge=0,
        le=10_000,
        description="Linear backoff unit between enqueue attempts",
    )

    # ──────────────────────────────────────────────────────────────
    # Processor
    # ──────────────────────────────────────────────────────────────

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Attempts after which a failing job is reported instead of retried",
    )

    retry_backoff_cap_ms: int = Field(
        default=30_000,
        ge=0,
        le=300_000,
        description="Upper bound for the processor-side sleep before a redelivered job",
    )

    worker_concurrency: int = Field(
        default=3,
        ge=1,
        le=64,
        description="Concurrent jobs per worker process",
    )

    batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Chunk size for scanner batches and processor pages",
    )

    # ──────────────────────────────────────────────────────────────
    # Scanner
    # ──────────────────────────────────────────────────────────────

    overdue_scan_interval_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Minutes between overdue scans (hourly by default)",
    )

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator(
        "job_attempts",
        "job_backoff_delay_ms",
        "enqueue_attempts",
        "enqueue_backoff_ms",
        "max_retries",
        "retry_backoff_cap_ms",
        "worker_concurrency",
        "batch_size",
        "overdue_scan_interval_minutes",
        mode="before",
    )
    @classmethod
    def _sanitize_numbers(cls, value: object) -> object:
        return sanitize_inline_numeric(value)
