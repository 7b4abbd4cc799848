"""Task-status pipeline commands.

- worker        - Start the taskiq worker that processes pipeline jobs
- scheduler     - Run the hourly overdue scan until interrupted
- scan-overdue  - Run one overdue scan now
"""

import asyncio
import subprocess
import sys
from typing import TYPE_CHECKING

import click

from taskflow_service.cli.utils import coro, error, header, info, key_values, success, warning
from taskflow_service.core.settings import get_pipeline_settings

if TYPE_CHECKING:
    from taskflow_service.workers.tasks import OverdueScanner


async def _build_scanner() -> "OverdueScanner":
    from taskflow_service.infra.database.session import AsyncSessionLocal
    from taskflow_service.infra.tasks.broker import start_taskiq
    from taskflow_service.workers.tasks import OverdueScanner
    from taskflow_service.workers.tasks.tasks import get_job_queue

    queue = get_job_queue()
    await start_taskiq()
    return OverdueScanner(AsyncSessionLocal, queue)


@click.command(name="worker")
@click.option(
    "--concurrency",
    "-c",
    default=None,
    type=int,
    help="Maximum simultaneous jobs (default: PIPELINE_WORKER_CONCURRENCY)",
)
@click.option(
    "--workers",
    "-w",
    default=1,
    type=int,
    help="Number of worker processes (default: 1)",
)
def worker(concurrency: int | None, workers: int) -> None:
    """Start a taskiq worker consuming pipeline jobs."""
    max_async = concurrency or get_pipeline_settings().worker_concurrency
    info(f"Starting pipeline worker (concurrency: {max_async}, processes: {workers})")

    cmd = [
        "taskiq",
        "worker",
        "taskflow_service.infra.tasks.broker:broker",
        "--workers",
        str(workers),
        "--max-async-tasks",
        str(max_async),
    ]

    try:
        subprocess.run(cmd, check=False)
    except KeyboardInterrupt:
        info("Worker stopped")
    except FileNotFoundError:
        error("taskiq command not found. Install with: pip install taskiq")
        sys.exit(1)


@click.command(name="scheduler")
@click.option(
    "--interval",
    "-i",
    default=None,
    type=int,
    help="Minutes between scans (default: PIPELINE_OVERDUE_SCAN_INTERVAL_MINUTES)",
)
@coro
async def scheduler(interval: int | None) -> None:
    """Run the overdue-task scan on a fixed schedule until interrupted."""
    from taskflow_service.infra.tasks.broker import stop_taskiq
    from taskflow_service.infra.tasks.scheduler import (
        get_job_status,
        setup_scheduled_jobs,
        start_scheduler,
        stop_scheduler,
    )

    try:
        scanner = await _build_scanner()
    except RuntimeError as e:
        error(str(e))
        sys.exit(1)

    setup_scheduled_jobs(scanner, interval_minutes=interval)
    await start_scheduler()
    for job in get_job_status():
        info(f"{job['name']}: next run at {job['next_run_time']}")

    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        info("Scheduler interrupted")
    finally:
        await stop_scheduler()
        await stop_taskiq()


@click.command(name="scan-overdue")
@coro
async def scan_overdue() -> None:
    """Run one overdue scan now and report what was enqueued."""
    from taskflow_service.infra.tasks.broker import stop_taskiq

    header("Overdue Task Scan")
    try:
        scanner = await _build_scanner()
    except RuntimeError as e:
        error(str(e))
        sys.exit(1)

    try:
        result = await scanner.check_overdue_tasks()
    finally:
        await stop_taskiq()

    key_values(
        {
            "found": result.found,
            "batches enqueued": result.batches_enqueued,
            "job ids": ", ".join(result.job_ids) or "-",
        }
    )
    if result.error:
        warning(f"Scan ended early: {result.error}")
    elif result.found:
        success("Overdue tasks enqueued")
    else:
        info("No overdue tasks")
