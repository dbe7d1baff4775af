"""Due-payment report and resolution-status routes for due and extra payments."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlmodel import Session

from regdesk.api.deps import get_audit, ok, require_admin
from regdesk.db.engine import get_session
from regdesk.models.audit import AuditEntry
from regdesk.services.due_payments import list_due_payments
from regdesk.services.resolution import get_resolution_status, set_resolution_status, to_payload

router = APIRouter()


class ResolutionStatusUpdate(BaseModel):
    resolutionStatus: Optional[str] = None


def _update(
    kind: str,
    target_id: str,
    body: ResolutionStatusUpdate,
    session: Session,
    admin_email: str,
    audit,
    background_tasks: BackgroundTasks,
) -> dict:
    record = set_resolution_status(
        session, kind, target_id, body.resolutionStatus, updated_by=admin_email
    )
    background_tasks.add_task(
        audit.record,
        AuditEntry(
            action="update_resolution_status",
            collection=f"{kind}s",
            record_id=target_id,
            user_id=admin_email,
            user_email=admin_email,
            details={"resolutionStatus": record.resolution_status},
        ),
    )
    return ok(to_payload(record))


@router.get("/due-payments")
def list_due_payment_report(
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    """Registrations that owe money or were overpaid, with their resolution status."""
    rows = list_due_payments(session)
    return ok(rows, count=len(rows))


@router.patch("/due-payments/{target_id}/status")
def update_due_payment_status(
    target_id: str,
    body: ResolutionStatusUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
):
    """Set the resolution status of a due payment (pending / in_progress / resolved)."""
    return _update("due_payment", target_id, body, session, admin_email, audit, background_tasks)


@router.get("/due-payments/{target_id}/status")
def read_due_payment_status(
    target_id: str,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return ok(to_payload(get_resolution_status(session, "due_payment", target_id)))


@router.patch("/extra-payments/{target_id}/status")
def update_extra_payment_status(
    target_id: str,
    body: ResolutionStatusUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
):
    """Set the resolution status of an extra payment (pending / in_progress / resolved)."""
    return _update("extra_payment", target_id, body, session, admin_email, audit, background_tasks)


@router.get("/extra-payments/{target_id}/status")
def read_extra_payment_status(
    target_id: str,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return ok(to_payload(get_resolution_status(session, "extra_payment", target_id)))
