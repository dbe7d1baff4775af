"""Record store models: users, registration forms and payments.

Every record is keyed by an opaque string id generated at creation time.
The id is also the row key in the mirrored Google Sheet, so it must never
change once the record exists.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def new_record_id() -> str:
    return uuid.uuid4().hex


class User(SQLModel, table=True):
    """A registrant account (created on first OAuth login)."""

    id: str = Field(default_factory=new_record_id, primary_key=True)
    name: str = ""
    email: str = Field(unique=True, index=True)
    university: Optional[str] = None
    email_verified: bool = False
    registration_done: bool = False
    payment_done: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class Form(SQLModel, table=True):
    """One submitted registration form (a team entry for a sport/event)."""

    id: str = Field(default_factory=new_record_id, primary_key=True)
    owner_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    title: str = ""  # sport / event name
    status: str = "draft"  # "draft", "submitted", "confirmed", "rejected"

    # [{"name": "...", ...}, ...]
    players: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    coach_name: Optional[str] = None
    coach_contact: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class Payment(SQLModel, table=True):
    """A payment proof submitted by a registrant, pending admin review."""

    id: str = Field(default_factory=new_record_id, primary_key=True)
    owner_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    amount_in_numbers: Optional[str] = None
    amount_in_words: Optional[str] = None
    payment_mode: Optional[str] = None  # "upi", "neft", "cash", ...
    transaction_id: Optional[str] = None
    payee_name: Optional[str] = None
    payment_date: Optional[datetime] = None

    status: str = "pending"  # "pending", "verified", "rejected"
    registration_status: str = "In Progress"
    send_email: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# Collection names double as the SyncTask kind and the audit "collection".
RECORD_MODELS = {
    "users": User,
    "forms": Form,
    "payments": Payment,
}
