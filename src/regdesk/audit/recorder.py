"""
Audit recorder for mutating operations.

record() is best-effort: a failed insert is logged and reported as False, and
never propagates into the business operation that triggered it. Routes hand
it to FastAPI BackgroundTasks so it runs after the response is sent.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlmodel import Session, select

from regdesk.models.audit import AuditEntry

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100


class AuditRecorder:
    """Writes and queries the audit trail."""

    def __init__(self, engine):
        self.engine = engine

    def record(self, entry: AuditEntry) -> bool:
        """Append one entry. Returns False (and logs) on any failure."""
        # The commit expires the entry and closing the session detaches it
        action, collection, record_id = entry.action, entry.collection, entry.record_id
        try:
            self._insert(entry)
        except Exception as exc:
            logger.error(
                "Failed to write audit entry %s %s:%s: %s", action, collection, record_id, exc
            )
            return False
        logger.info("[Audit] %s - %s:%s", action, collection, record_id)
        return True

    def _insert(self, entry: AuditEntry) -> None:
        with Session(self.engine) as s:
            s.add(entry)
            s.commit()

    def query(
        self,
        action: Optional[str] = None,
        collection: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        """Return entries matching every given filter, newest first, at most `limit`."""
        stmt = select(AuditEntry)
        if action:
            stmt = stmt.where(AuditEntry.action == action)
        if collection:
            stmt = stmt.where(AuditEntry.collection == collection)
        if user_id:
            stmt = stmt.where(AuditEntry.user_id == user_id)
        stmt = stmt.order_by(AuditEntry.timestamp.desc(), AuditEntry.id.desc()).limit(limit)

        with Session(self.engine) as s:
            return list(s.exec(stmt).all())


def calculate_changes(
    before: Mapping[str, Any], after: Mapping[str, Any]
) -> Dict[str, Dict[str, Any]]:
    """
    Field-level diff between two snapshots.

    Keys whose value differs (or that only exist in `after`) map to
    {"before": old, "after": new}; keys dropped from `after` report after=None.
    """
    changes: Dict[str, Dict[str, Any]] = {}
    for key, new in after.items():
        old = before.get(key)
        if old != new:
            changes[key] = {"before": old, "after": new}
    for key, old in before.items():
        if key not in after and old is not None:
            changes[key] = {"before": old, "after": None}
    return changes
