"""Audit trail model."""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class AuditEntry(SQLModel, table=True):
    """One immutable row per mutating operation. Never updated or deleted."""

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=datetime.utcnow, index=True)
    action: str = Field(index=True)  # "update_payment", "create_form", ...
    collection: str = Field(index=True)  # "payments", "forms", "users", "due_payments"
    record_id: str

    user_id: Optional[str] = Field(default=None, index=True)
    user_email: Optional[str] = None

    # {"field": {"before": ..., "after": ...}}
    changes: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
