"""
Admin CRUD for users, forms and payments.

Handlers commit the write and return a RecordChange describing it. Audit and
sheet sync are side effects the route layer schedules from that description,
so a failure in either never affects the write itself.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlmodel import Session, select

from regdesk.audit.recorder import calculate_changes
from regdesk.errors import NotFoundError, ValidationError
from regdesk.models.records import RECORD_MODELS, Payment, User

# Fields an admin may change through PATCH; everything else is ignored.
UPDATABLE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "users": ("name", "university", "email_verified", "registration_done", "payment_done"),
    "forms": ("title", "status", "players", "coach_name", "coach_contact"),
    "payments": (
        "transaction_id",
        "amount_in_numbers",
        "amount_in_words",
        "status",
        "registration_status",
        "send_email",
    ),
}

PAYMENT_STATUSES = ("pending", "verified", "rejected")

# Payment status → registration status shown to the registrant
_REGISTRATION_STATUS_FOR = {
    "verified": "Confirmed",
    "rejected": "Rejected",
    "pending": "In Progress",
}


@dataclass
class RecordChange:
    """Outcome of one write: the record, its diff and every record it touched."""

    kind: str
    record: Any
    operation: str  # "insert" / "update"
    changes: Dict[str, Any] = field(default_factory=dict)
    touched: List[Tuple[str, str]] = field(default_factory=list)


def _model_for(kind: str):
    try:
        return RECORD_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind!r}")


def snapshot(record) -> Dict[str, Any]:
    """JSON-safe dict of a record (datetimes as ISO strings)."""
    return record.model_dump(mode="json")


def list_records(session: Session, kind: str, limit: int = 50, offset: int = 0) -> list:
    """List records of one kind, newest first."""
    model = _model_for(kind)
    return session.exec(
        select(model).order_by(model.created_at.desc()).offset(offset).limit(limit)
    ).all()


def get_record(session: Session, kind: str, record_id: str):
    record = session.get(_model_for(kind), record_id)
    if record is None:
        raise NotFoundError(f"{kind[:-1].capitalize()} not found")
    return record


def create_record(session: Session, kind: str, data: Mapping[str, Any]) -> RecordChange:
    """Insert a new record. The id is always generated here, never taken from input."""
    model = _model_for(kind)
    values = {k: v for k, v in data.items() if k not in ("id", "created_at", "updated_at")}

    if kind == "users":
        email = (values.get("email") or "").strip().lower()
        if not email:
            raise ValidationError("Email is required")
        existing = session.exec(select(User).where(User.email == email)).first()
        if existing:
            raise ValidationError("A user with this email already exists")
        values["email"] = email
    if kind == "payments" and values.get("status", "pending") not in PAYMENT_STATUSES:
        raise ValidationError("Invalid payment status")

    record = model(**values)
    session.add(record)
    session.commit()
    session.refresh(record)
    return RecordChange(
        kind=kind,
        record=record,
        operation="insert",
        changes=calculate_changes({}, snapshot(record)),
        touched=[(kind, record.id)],
    )


def update_record(session: Session, kind: str, record_id: str, data: Mapping[str, Any]) -> RecordChange:
    """
    Apply the allow-listed fields in data to one record.

    Raises:
        NotFoundError: no record with record_id.
        ValidationError: invalid payment status, or null for a required field.
    """
    record = get_record(session, kind, record_id)
    before = snapshot(record)
    touched = [(kind, record.id)]

    updates = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS[kind]}
    columns = type(record).__table__.c
    for key, value in updates.items():
        if value is None and not columns[key].nullable:
            raise ValidationError(f"{key} cannot be null")
    if kind == "payments" and "status" in updates:
        if updates["status"] not in PAYMENT_STATUSES:
            raise ValidationError("Invalid payment status")
        updates["registration_status"] = _REGISTRATION_STATUS_FOR[updates["status"]]

    for key, value in updates.items():
        setattr(record, key, value)
    record.updated_at = datetime.utcnow()
    session.add(record)

    if isinstance(record, Payment) and "status" in updates and record.owner_id:
        owner = _sync_owner_payment_flag(session, record)
        if owner is not None:
            touched.append(("users", owner.id))

    session.commit()
    session.refresh(record)

    changes = calculate_changes(before, snapshot(record))
    changes.pop("updated_at", None)
    return RecordChange(
        kind=kind, record=record, operation="update", changes=changes, touched=touched
    )


def _sync_owner_payment_flag(session: Session, payment: Payment) -> Optional[User]:
    """Set the owner's payment_done from the payment status. Returns the owner if it changed."""
    owner = session.get(User, payment.owner_id)
    if owner is None:
        return None
    paid = payment.status == "verified"
    if owner.payment_done == paid:
        return None
    owner.payment_done = paid
    owner.updated_at = datetime.utcnow()
    session.add(owner)
    return owner
