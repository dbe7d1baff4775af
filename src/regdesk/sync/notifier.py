"""ChangeNotifier: hands completed writes to the dispatcher as detached tasks."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"


@dataclass(frozen=True)
class SyncTask:
    """Propagate the current state of record (kind, record_id) to the sheet."""

    kind: str
    record_id: str
    operation: str = UPDATE
    created_at: datetime = field(default_factory=datetime.utcnow, compare=False)


class ChangeNotifier:
    """
    Called by write handlers after their commit. notify() never blocks and
    never raises: it wraps the delivery in an asyncio task and returns.

    Tasks are kept in self._pending until they finish so they aren't garbage
    collected mid-flight; drain() awaits whatever is still outstanding.
    """

    def __init__(self, dispatcher, enabled: bool = True):
        self.dispatcher = dispatcher
        self.enabled = enabled
        self._pending: Set[asyncio.Task] = set()

    def notify(self, kind: str, record_id: str, operation: str = UPDATE) -> Optional[asyncio.Task]:
        """Schedule a sync for one record. Returns the task, or None if not scheduled."""
        if not self.enabled:
            return None
        try:
            task = SyncTask(kind=kind, record_id=record_id, operation=operation)
            loop = asyncio.get_running_loop()
            handle = loop.create_task(self._deliver(task))
        except Exception as exc:
            # No running loop (sync caller) or loop shutting down
            logger.warning("Could not schedule sheets sync for %s %s: %s", kind, record_id, exc)
            return None

        self._pending.add(handle)
        handle.add_done_callback(self._pending.discard)
        return handle

    async def _deliver(self, task: SyncTask) -> bool:
        try:
            ok = await self.dispatcher.upsert_record(task.kind, task.record_id)
            if ok:
                logger.info("Synced %s %s (%s)", task.kind, task.record_id, task.operation)
            return bool(ok)
        except Exception:
            logger.exception("Sheets sync task failed for %s %s", task.kind, task.record_id)
            return False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
