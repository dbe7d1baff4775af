"""Tests for APScheduler job configuration."""
from unittest.mock import AsyncMock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from regdesk.scheduler.jobs import POLL_JOB_ID, add_poll_job, build_scheduler


class TestBuildScheduler:
    def test_returns_scheduler(self):
        assert isinstance(build_scheduler(), AsyncIOScheduler)

    def test_scheduler_not_running_on_creation(self):
        scheduler = build_scheduler()
        assert not scheduler.running
        assert scheduler.get_jobs() == []


class TestAddPollJob:
    def test_interval_job_registered(self):
        scheduler = build_scheduler()
        add_poll_job(scheduler, AsyncMock(), interval_seconds=5)

        job = scheduler.get_job(POLL_JOB_ID)
        assert job is not None
        assert job.trigger.__class__.__name__ == "IntervalTrigger"
        assert job.trigger.interval.total_seconds() == 5

    @pytest.mark.asyncio
    async def test_replacing_keeps_single_job(self):
        """Adding the poll job twice to a running scheduler must not create a second timer."""
        scheduler = build_scheduler()
        scheduler.start()
        try:
            add_poll_job(scheduler, AsyncMock(), interval_seconds=5, run_now=False)
            add_poll_job(scheduler, AsyncMock(), interval_seconds=10, run_now=False)

            jobs = scheduler.get_jobs()
            assert len(jobs) == 1
            assert jobs[0].trigger.interval.total_seconds() == 10
        finally:
            scheduler.shutdown(wait=False)
