"""
Unit tests for the background job registry.
"""

from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from campuslink.core.scheduler import (
    list_registered_jobs,
    pause_job,
    register_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)


class TestJobRegistry:
    def test_register_before_start(self):
        """Jobs can be registered before the scheduler exists."""
        register_job("nightly", AsyncMock(), IntervalTrigger(hours=1))

        assert list_registered_jobs() == [{"job_id": "nightly", "registered": True}]

    def test_pause_and_resume_without_scheduler(self):
        register_job("nightly", AsyncMock(), IntervalTrigger(hours=1))

        assert pause_job("nightly") is False
        assert resume_job("nightly") is False


async def _noop_job():
    return None


class TestSchedulerLifecycle:
    @pytest.mark.asyncio
    async def test_start_schedules_registered_jobs(self):
        register_job("nightly", _noop_job, IntervalTrigger(hours=1))

        scheduler = await start_scheduler()
        try:
            assert scheduler.get_job("nightly") is not None

            register_job("hourly", _noop_job, IntervalTrigger(hours=1))
            assert scheduler.get_job("hourly") is not None
            assert pause_job("hourly") is True
            assert resume_job("hourly") is True
        finally:
            await stop_scheduler()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_safe(self):
        await stop_scheduler()


class TestTriggerJobManually:
    @pytest.mark.asyncio
    async def test_returns_job_result(self):
        job = AsyncMock(return_value={"total_deactivated": 2})
        register_job("sweep", job, IntervalTrigger(hours=1))

        result = await trigger_job_manually("sweep")

        assert result["status"] == "success"
        assert result["result"] == {"total_deactivated": 2}
        job.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_job_failure_is_reported(self):
        register_job("sweep", AsyncMock(side_effect=RuntimeError("boom")), IntervalTrigger(hours=1))

        result = await trigger_job_manually("sweep")

        assert result["status"] == "error"
        assert result["error"] == "boom"

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(ValueError):
            await trigger_job_manually("does_not_exist")
