"""
Due-payment report: registrations whose player count no longer matches what
was paid for.

Two sources feed the report:

  verified payments   players paid for = amount // PRICE_PER_PLAYER, compared
                      with the players currently on the owner's forms
                      (positive difference is owed, negative is overpaid)
  unpaid owners       owners with forms but no verified payment owe the full
                      amount for every current player

Each row carries the resolution overlay stored for ("due_payment", row id),
so an admin can mark it in_progress / resolved without touching the records.
"""
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from regdesk.models.records import Form, Payment, User
from regdesk.models.status import ResolutionStatus, ResolutionStatusRecord

PRICE_PER_PLAYER = 800


def parse_amount(value: Optional[str]) -> int:
    """Parse an amount such as "2,500". Anything unparseable counts as 0."""
    if not value:
        return 0
    try:
        return int(float(str(value).replace(",", "").strip()))
    except (ValueError, OverflowError):
        return 0


def _form_details(forms: List[Form]) -> List[Dict[str, Any]]:
    return [
        {"formId": f.id, "sport": f.title, "currentPlayers": len(f.players or [])}
        for f in forms
    ]


def _overlay(session: Session, row_id: str) -> Dict[str, Any]:
    record = session.get(ResolutionStatusRecord, ("due_payment", row_id))
    if record is None:
        return {"resolutionStatus": ResolutionStatus.PENDING.value, "updatedBy": None}
    return {"resolutionStatus": record.resolution_status, "updatedBy": record.updated_by}


def _row(
    row_id: str,
    user: User,
    payment: Optional[Payment],
    forms: List[Form],
    original: int,
    amount_due: int,
    status: str,
) -> Dict[str, Any]:
    current = sum(len(f.players or []) for f in forms)
    return {
        "id": row_id,
        "userId": user.id,
        "userName": user.name or "N/A",
        "userEmail": user.email,
        "university": user.university or "N/A",
        "paymentId": payment.id if payment else None,
        "transactionId": payment.transaction_id if payment else None,
        "originalPlayerCount": original,
        "currentPlayerCount": current,
        "playerDifference": current - original,
        "amountDue": amount_due,
        "status": status,
        "forms": _form_details(forms),
    }


def list_due_payments(session: Session) -> List[Dict[str, Any]]:
    """Build the report, verified-payment rows first."""
    forms_by_owner: Dict[str, List[Form]] = {}
    for form in session.exec(select(Form).order_by(Form.created_at)).all():
        if form.owner_id:
            forms_by_owner.setdefault(form.owner_id, []).append(form)

    rows: List[Dict[str, Any]] = []
    verified = session.exec(
        select(Payment).where(Payment.status == "verified").order_by(Payment.created_at)
    ).all()
    paid_owners = set()

    for payment in verified:
        if not payment.owner_id:
            continue
        paid_owners.add(payment.owner_id)
        user = session.get(User, payment.owner_id)
        if user is None:
            continue
        forms = forms_by_owner.get(payment.owner_id, [])
        original = parse_amount(payment.amount_in_numbers) // PRICE_PER_PLAYER
        current = sum(len(f.players or []) for f in forms)
        difference = current - original
        if difference == 0:
            continue
        rows.append(_row(
            payment.id, user, payment, forms, original,
            amount_due=difference * PRICE_PER_PLAYER,
            status="pending" if difference > 0 else "overpaid",
        ))

    for owner_id, forms in forms_by_owner.items():
        if owner_id in paid_owners:
            continue
        user = session.get(User, owner_id)
        if user is None:
            continue
        payment = session.exec(select(Payment).where(Payment.owner_id == owner_id)).first()
        current = sum(len(f.players or []) for f in forms)
        rows.append(_row(
            owner_id, user, payment, forms, 0,
            amount_due=current * PRICE_PER_PLAYER,
            status="unverified" if payment else "unpaid",
        ))

    for row in rows:
        row.update(_overlay(session, row["id"]))
    return rows
