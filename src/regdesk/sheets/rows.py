"""
Record → Google Sheets row mapping.

Converts User / Form / Payment rows into flat lists of strings in the column
order of the mirrored worksheets. No I/O here; the dispatcher handles the
Sheets calls.

Column A of every worksheet is the record id, which is the upsert key.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from regdesk.models.records import Form, Payment, User

DEFAULT_TIMEZONE = "Asia/Kolkata"


@dataclass(frozen=True)
class SheetConfig:
    name: str
    headers: List[str]


SHEET_CONFIGS: Dict[str, SheetConfig] = {
    "forms": SheetConfig(
        name="Registrations",
        headers=[
            "Form ID",
            "Owner ID",
            "Sport/Event",
            "Status",
            "Created At",
            "Updated At",
            "Player Count",
            "Player Names",
            "Coach Name",
            "Coach Contact",
        ],
    ),
    "users": SheetConfig(
        name="Users",
        headers=[
            "User ID",
            "Name",
            "Email",
            "University",
            "Verified",
            "Registration Done",
            "Payment Done",
            "Created At",
        ],
    ),
    "payments": SheetConfig(
        name="Payments",
        headers=[
            "Payment ID",
            "Owner ID",
            "Amount (Numbers)",
            "Amount (Words)",
            "Payment Mode",
            "Transaction ID",
            "Payee Name",
            "Payment Date",
            "Status",
            "Created At",
        ],
    ),
}


def format_date(value: Optional[datetime], tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Render a stored (naive UTC) datetime as "MM/DD/YYYY, hh:mm AM" local time."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(ZoneInfo(tz_name))
    return local.strftime("%m/%d/%Y, %I:%M %p")


def _yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def user_row(user: User, tz_name: str = DEFAULT_TIMEZONE) -> List[str]:
    return [
        user.id,
        _text(user.name),
        _text(user.email),
        _text(user.university),
        _yes_no(user.email_verified),
        _yes_no(user.registration_done),
        _yes_no(user.payment_done),
        format_date(user.created_at, tz_name),
    ]


def form_row(form: Form, tz_name: str = DEFAULT_TIMEZONE) -> List[str]:
    players = form.players or []
    # Older submissions used "playerName" instead of "name"
    player_names = [
        _text(p.get("name") or p.get("playerName")) for p in players
    ]
    return [
        form.id,
        _text(form.owner_id),
        _text(form.title),
        _text(form.status),
        format_date(form.created_at, tz_name),
        format_date(form.updated_at, tz_name),
        str(len(players)),
        ", ".join(player_names),
        _text(form.coach_name),
        _text(form.coach_contact),
    ]


def payment_row(payment: Payment, tz_name: str = DEFAULT_TIMEZONE) -> List[str]:
    return [
        payment.id,
        _text(payment.owner_id),
        _text(payment.amount_in_numbers),
        _text(payment.amount_in_words),
        _text(payment.payment_mode),
        _text(payment.transaction_id),
        _text(payment.payee_name),
        format_date(payment.payment_date, tz_name),
        _text(payment.status),
        format_date(payment.created_at, tz_name),
    ]


_ROW_BUILDERS = {
    "users": user_row,
    "forms": form_row,
    "payments": payment_row,
}


def record_to_row(kind: str, record, tz_name: str = DEFAULT_TIMEZONE) -> List[str]:
    """Map any record to its sheet row.

    Raises:
        KeyError: if kind is not one of the synced collections.
    """
    return _ROW_BUILDERS[kind](record, tz_name)
