"""
APScheduler setup for the polling sync fallback.

The scheduler runs inside the FastAPI process on its event loop. It is built
empty and not started; SyncService adds and removes the interval job.
"""
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

POLL_JOB_ID = "sheets_poll_sync"


def build_scheduler() -> AsyncIOScheduler:
    """
    Create the AsyncIOScheduler.

    Returns:
        Configured AsyncIOScheduler (not yet started, no jobs).
    """
    return AsyncIOScheduler(
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 30},
    )


def add_poll_job(scheduler: AsyncIOScheduler, func, interval_seconds: int, run_now: bool = True):
    """
    Register (or replace) the interval poll job and return the Job handle.

    With run_now the first run fires immediately instead of one interval later.
    """
    kwargs = {}
    if run_now:
        kwargs["next_run_time"] = datetime.now(timezone.utc)
    return scheduler.add_job(
        func,
        trigger="interval",
        seconds=interval_seconds,
        id=POLL_JOB_ID,
        replace_existing=True,
        **kwargs,
    )
