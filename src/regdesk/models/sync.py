"""Sync audit log model."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SyncLog(SQLModel, table=True):
    """Records each initial bulk sync for audit and debugging."""

    id: Optional[int] = Field(default=None, primary_key=True)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    status: str = "running"  # "running", "success", "error"
    forms_synced: int = 0
    users_synced: int = 0
    payments_synced: int = 0
    error_message: Optional[str] = None
