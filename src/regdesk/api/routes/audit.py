"""Audit log query route."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from regdesk.api.deps import get_audit, ok, require_admin
from regdesk.audit.recorder import DEFAULT_QUERY_LIMIT

router = APIRouter()


@router.get("/logs")
def list_audit_logs(
    action: Optional[str] = None,
    collection: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=1000),
    admin_email: str = Depends(require_admin),
    audit=Depends(get_audit),
):
    """Audit entries matching the filters, newest first."""
    entries = audit.query(action=action, collection=collection, user_id=user_id, limit=limit)
    data = [e.model_dump(mode="json") for e in entries]
    return ok(data, count=len(data))
