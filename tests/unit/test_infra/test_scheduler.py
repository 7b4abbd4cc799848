"""Unit tests for the overdue scan schedule."""

from __future__ import annotations

from datetime import timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from taskflow_service.features.tasks.schemas import ScanResult
from taskflow_service.infra.tasks.scheduler import OVERDUE_SCAN_JOB_ID, setup_scheduled_jobs


class StubScanner:
    async def check_overdue_tasks(self) -> ScanResult:
        return ScanResult()


@pytest.fixture
def target() -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone="UTC")


@pytest.mark.unit
class TestSetupScheduledJobs:
    """Test suite for setup_scheduled_jobs."""

    def test_registers_hourly_scan_by_default(self, target):
        """Test that the scan runs every 60 minutes unless overridden."""
        scanner = StubScanner()

        setup_scheduled_jobs(scanner, target=target)

        job = target.get_job(OVERDUE_SCAN_JOB_ID)
        assert job is not None
        assert job.func == scanner.check_overdue_tasks
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval == timedelta(minutes=60)

    def test_interval_override(self, target):
        """Test that an explicit interval replaces the configured one."""
        setup_scheduled_jobs(StubScanner(), interval_minutes=5, target=target)

        assert target.get_job(OVERDUE_SCAN_JOB_ID).trigger.interval == timedelta(minutes=5)
