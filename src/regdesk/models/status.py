"""Resolution-status overlay for reviewable items (due / extra payments)."""
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel


class ResolutionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class ResolutionStatusRecord(SQLModel, table=True):
    """Last-write-wins status keyed by (kind, target_id)."""

    kind: str = Field(primary_key=True)  # "due_payment", "extra_payment"
    target_id: str = Field(primary_key=True)
    resolution_status: str = ResolutionStatus.PENDING.value
    last_status_update: datetime = Field(default_factory=datetime.utcnow)
    updated_by: str
