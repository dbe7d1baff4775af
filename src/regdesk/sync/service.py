"""
SyncService: start/stop/status controls for the polling sync fallback.

One instance lives on app.state. It owns the AsyncIOScheduler and at most one
interval job handle, so a second start() cannot create a competing timer.

Each poll cycle re-sends records updated since the last clean cycle. The
watermark only advances when a cycle has no failures, which is what lets a
failed delivery be picked up again on the next tick.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from regdesk.scheduler.jobs import POLL_JOB_ID, add_poll_job, build_scheduler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5


class SyncService:
    """Owns the polling timer and the process-wide sync counters."""

    def __init__(self, dispatcher, scheduler=None, interval_seconds: int = DEFAULT_INTERVAL_SECONDS):
        """
        Args:
            dispatcher: SheetsSyncDispatcher (or AsyncMock in tests).
            scheduler: AsyncIOScheduler; defaults to build_scheduler().
            interval_seconds: Seconds between poll cycles.
        """
        self.dispatcher = dispatcher
        self.scheduler = scheduler or build_scheduler()
        self.interval_seconds = interval_seconds

        self._job = None
        self._processing = False
        self._watermark: Optional[datetime] = None

        self.last_run_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.runs = 0
        self.records_synced = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._job is not None

    def start(self) -> bool:
        """
        Start polling. Must be called from within the running event loop.

        Returns:
            True if the timer was started, False if it was already running.
        """
        if self._job is not None:
            logger.info("Auto-sync already running")
            return False

        if not self.scheduler.running:
            self.scheduler.start()
        self._job = add_poll_job(self.scheduler, self.run_once, self.interval_seconds)
        logger.info("Auto-sync service started (every %d seconds)", self.interval_seconds)
        return True

    def stop(self) -> bool:
        """
        Stop polling. A cycle already in flight is left to finish on its own.

        Returns:
            True if a timer was stopped, False if none was running.
        """
        if self._job is None:
            return False
        if self.scheduler.get_job(POLL_JOB_ID) is not None:
            self.scheduler.remove_job(POLL_JOB_ID)
        self._job = None
        logger.info("Auto-sync service stopped")
        return True

    def shutdown(self) -> None:
        """Stop polling and shut the scheduler down (app shutdown)."""
        self.stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def run_once(self):
        """
        One poll cycle. Skipped if the previous cycle is still processing.

        Never raises: the scheduler job must stay alive across failures.

        Returns:
            The dispatcher's SweepResult, or None if skipped or failed.
        """
        if self._processing:
            logger.info("Previous sync still running, skipping")
            return None

        self._processing = True
        started = datetime.utcnow()
        try:
            result = await self.dispatcher.sync_changed_since(self._watermark)
            self.runs += 1
            self.records_synced += result.synced
            self.failures += result.failed
            if result.failed:
                self.last_error = f"{result.failed} record(s) failed to sync"
            else:
                self._watermark = started
            return result

        except Exception as exc:
            self.failures += 1
            self.last_error = str(exc)
            logger.error("Poll sync failed: %s", exc)
            return None

        finally:
            self.last_run_at = started
            self._processing = False

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "state": "running" if self.running else "idle",
            "currently_processing": self._processing,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "runs": self.runs,
            "records_synced": self.records_synced,
            "failures": self.failures,
            "last_error": self.last_error,
        }
