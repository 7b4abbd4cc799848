"""APScheduler integration for the overdue-task scan.

APScheduler decides WHEN the scan runs; the scan itself only reads the
store and enqueues batch jobs, which taskiq workers execute.

Architecture:
    APScheduler (scheduler process) -> OverdueScanner -> RabbitMQ -> Taskiq Worker
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from taskflow_service.core.settings import get_pipeline_settings

if TYPE_CHECKING:
    from taskflow_service.workers.tasks.overdue import OverdueScanner

logger = logging.getLogger(__name__)

OVERDUE_SCAN_JOB_ID = "check_overdue_tasks"

scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,  # Combine multiple pending executions into one
        "max_instances": 1,  # Only one scan at a time
        "misfire_grace_time": 60,
    },
)


def setup_scheduled_jobs(
    scanner: OverdueScanner,
    *,
    interval_minutes: int | None = None,
    target: AsyncIOScheduler | None = None,
) -> None:
    """Register the overdue scan on a fixed interval (hourly by default).

    Args:
        scanner: Scanner whose ``check_overdue_tasks`` runs on each tick.
        interval_minutes: Override for ``PIPELINE_OVERDUE_SCAN_INTERVAL_MINUTES``.
        target: Scheduler to register on; the module scheduler when omitted.
    """
    sched = target or scheduler
    minutes = interval_minutes or get_pipeline_settings().overdue_scan_interval_minutes

    sched.add_job(
        func=scanner.check_overdue_tasks,
        trigger=IntervalTrigger(minutes=minutes),
        id=OVERDUE_SCAN_JOB_ID,
        name="Scan for overdue pending tasks",
        replace_existing=True,
    )

    logger.info(
        "Scheduled overdue scan",
        extra={"interval_minutes": minutes, "job_id": OVERDUE_SCAN_JOB_ID},
    )


async def start_scheduler() -> None:
    """Start the APScheduler.

    Call after setup_scheduled_jobs().
    """
    if not scheduler.running:
        logger.info("Starting APScheduler")
        scheduler.start()
        logger.info(f"APScheduler started with {len(scheduler.get_jobs())} jobs")
    else:
        logger.warning("APScheduler is already running")


async def stop_scheduler() -> None:
    """Stop the APScheduler gracefully."""
    if scheduler.running:
        logger.info("Stopping APScheduler")
        scheduler.shutdown(wait=True)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")


def get_job_status() -> list[dict[str, Any]]:
    """Get status of all scheduled jobs."""
    return [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
