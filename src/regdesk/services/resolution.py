"""Resolution-status workflow for due and extra payments."""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session

from regdesk.errors import NotFoundError, ValidationError
from regdesk.models.status import ResolutionStatus, ResolutionStatusRecord

REVIEWABLE_KINDS = ("due_payment", "extra_payment")

_VALID_STATUSES = {s.value for s in ResolutionStatus}


def validate_resolution_status(value: Any) -> str:
    """Return value if it is one of pending / in_progress / resolved, else raise ValidationError."""
    if not isinstance(value, str) or value not in _VALID_STATUSES:
        raise ValidationError("Invalid resolution status")
    return value


def set_resolution_status(
    session: Session,
    kind: str,
    target_id: str,
    status: Any,
    updated_by: str,
) -> ResolutionStatusRecord:
    """
    Upsert the status overlay for (kind, target_id).

    Last write wins: a concurrent update to the same target simply
    overwrites. Validation happens before any write, so a rejected value
    leaves the store untouched.

    Raises:
        ValidationError: unknown kind or status value.
    """
    if kind not in REVIEWABLE_KINDS:
        raise ValidationError(f"Unknown reviewable kind: {kind}")
    status = validate_resolution_status(status)

    record = session.get(ResolutionStatusRecord, (kind, target_id))
    if record is None:
        record = ResolutionStatusRecord(kind=kind, target_id=target_id, updated_by=updated_by)
    record.resolution_status = status
    record.updated_by = updated_by
    record.last_status_update = datetime.utcnow()
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def get_resolution_status(session: Session, kind: str, target_id: str) -> ResolutionStatusRecord:
    record: Optional[ResolutionStatusRecord] = session.get(ResolutionStatusRecord, (kind, target_id))
    if record is None:
        raise NotFoundError("No resolution status recorded")
    return record


def to_payload(record: ResolutionStatusRecord) -> Dict[str, Any]:
    return {
        "resolutionStatus": record.resolution_status,
        "updatedBy": record.updated_by,
        "lastStatusUpdate": record.last_status_update.isoformat(),
    }
