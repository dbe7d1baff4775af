"""Admin routes for users, registration forms and payments."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from regdesk.api.deps import get_audit, get_notifier, ok, require_admin
from regdesk.db.engine import get_session
from regdesk.models.audit import AuditEntry
from regdesk.services import records as svc
from regdesk.sync.notifier import UPDATE

router = APIRouter()


# ─── Request bodies ──────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    name: str = ""
    email: str
    university: Optional[str] = None
    email_verified: bool = False


class UserUpdate(BaseModel):
    name: Optional[str] = None
    university: Optional[str] = None
    email_verified: Optional[bool] = None
    registration_done: Optional[bool] = None
    payment_done: Optional[bool] = None


class FormCreate(BaseModel):
    owner_id: Optional[str] = None
    title: str
    status: str = "submitted"
    players: List[Dict[str, Any]] = []
    coach_name: Optional[str] = None
    coach_contact: Optional[str] = None


class FormUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[str] = None
    players: Optional[List[Dict[str, Any]]] = None
    coach_name: Optional[str] = None
    coach_contact: Optional[str] = None


class PaymentCreate(BaseModel):
    owner_id: Optional[str] = None
    amount_in_numbers: Optional[str] = None
    amount_in_words: Optional[str] = None
    payment_mode: Optional[str] = None
    transaction_id: Optional[str] = None
    payee_name: Optional[str] = None
    payment_date: Optional[datetime] = None
    status: str = "pending"


class PaymentUpdate(BaseModel):
    transaction_id: Optional[str] = None
    amount_in_numbers: Optional[str] = None
    amount_in_words: Optional[str] = None
    status: Optional[str] = None
    registration_status: Optional[str] = None
    send_email: Optional[bool] = None


# ─── Shared write tail ───────────────────────────────────────────────────────

def _after_write(
    change: svc.RecordChange,
    admin_email: str,
    audit,
    notifier,
    background_tasks: BackgroundTasks,
) -> None:
    """Queue the audit entry and one sheet sync per touched record. Never raises."""
    action = "create" if change.operation == "insert" else "update"
    background_tasks.add_task(
        audit.record,
        AuditEntry(
            action=f"{action}_{change.kind[:-1]}",
            collection=change.kind,
            record_id=change.record.id,
            user_id=admin_email,
            user_email=admin_email,
            changes=change.changes or None,
        ),
    )
    for kind, record_id in change.touched:
        op = change.operation if (kind, record_id) == (change.kind, change.record.id) else UPDATE
        background_tasks.add_task(_notify, notifier, kind, record_id, op)


async def _notify(notifier, kind: str, record_id: str, operation: str) -> None:
    # Runs on the event loop, so the notifier can spawn its delivery task
    notifier.notify(kind, record_id, operation)


def _list(session: Session, kind: str, limit: int, offset: int) -> dict:
    rows = [svc.snapshot(r) for r in svc.list_records(session, kind, limit=limit, offset=offset)]
    return ok(rows, count=len(rows))


def _create(kind, body: BaseModel, session, admin_email, audit, notifier, background_tasks):
    change = svc.create_record(session, kind, body.model_dump())
    _after_write(change, admin_email, audit, notifier, background_tasks)
    return ok(svc.snapshot(change.record))


def _update(kind, record_id, body: BaseModel, session, admin_email, audit, notifier, background_tasks):
    change = svc.update_record(session, kind, record_id, body.model_dump(exclude_unset=True))
    _after_write(change, admin_email, audit, notifier, background_tasks)
    return ok(svc.snapshot(change.record), changes=change.changes)


# ─── Users ───────────────────────────────────────────────────────────────────

@router.get("/users")
def list_users(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return _list(session, "users", limit, offset)


@router.get("/users/{record_id}")
def get_user(
    record_id: str,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return ok(svc.snapshot(svc.get_record(session, "users", record_id)))


@router.post("/users")
def create_user(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    return _create("users", body, session, admin_email, audit, notifier, background_tasks)


@router.patch("/users/{record_id}")
def update_user(
    record_id: str,
    body: UserUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    return _update("users", record_id, body, session, admin_email, audit, notifier, background_tasks)


# ─── Forms ───────────────────────────────────────────────────────────────────

@router.get("/forms")
def list_forms(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return _list(session, "forms", limit, offset)


@router.get("/forms/{record_id}")
def get_form(
    record_id: str,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return ok(svc.snapshot(svc.get_record(session, "forms", record_id)))


@router.post("/forms")
def create_form(
    body: FormCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    return _create("forms", body, session, admin_email, audit, notifier, background_tasks)


@router.patch("/forms/{record_id}")
def update_form(
    record_id: str,
    body: FormUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    return _update("forms", record_id, body, session, admin_email, audit, notifier, background_tasks)


# ─── Payments ────────────────────────────────────────────────────────────────

@router.get("/payments")
def list_payments(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return _list(session, "payments", limit, offset)


@router.get("/payments/{record_id}")
def get_payment(
    record_id: str,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
):
    return ok(svc.snapshot(svc.get_record(session, "payments", record_id)))


@router.post("/payments")
def create_payment(
    body: PaymentCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    return _create("payments", body, session, admin_email, audit, notifier, background_tasks)


@router.patch("/payments/{record_id}")
def update_payment(
    record_id: str,
    body: PaymentUpdate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
    notifier=Depends(get_notifier),
):
    """Update a payment; a status change also updates the owner's payment_done flag."""
    return _update("payments", record_id, body, session, admin_email, audit, notifier, background_tasks)
