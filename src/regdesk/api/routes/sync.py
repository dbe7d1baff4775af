"""Sheets sync control routes: polling timer, event-sync status, initial sync."""
import time
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlmodel import Session, select

from regdesk.api.deps import (
    get_app_settings,
    get_dispatcher,
    get_sync_service,
    ok,
    require_admin,
)
from regdesk.db.engine import get_session
from regdesk.errors import ForbiddenError, ValidationError
from regdesk.models.sync import SyncLog

router = APIRouter()


class SyncActionRequest(BaseModel):
    action: Optional[str] = None


@router.get("/auto")
def auto_sync_status(
    admin_email: str = Depends(require_admin),
    service=Depends(get_sync_service),
):
    """Running/idle state and counters of the polling sync service."""
    return ok(service.status())


@router.post("/auto")
async def control_auto_sync(
    request: SyncActionRequest,
    admin_email: str = Depends(require_admin),
    service=Depends(get_sync_service),
):
    """Start or stop the polling timer."""
    if request.action == "start":
        started = service.start()
        message = (
            f"Auto-sync service started (syncing every {service.interval_seconds} seconds)"
            if started
            else "Auto-sync service already running"
        )
        return ok(service.status(), message=message)

    if request.action == "stop":
        stopped = service.stop()
        message = "Auto-sync service stopped" if stopped else "Auto-sync service was not running"
        return ok(service.status(), message=message)

    raise ValidationError("Invalid action. Use 'start' or 'stop'")


@router.get("/event")
def event_sync_status(
    admin_email: str = Depends(require_admin),
    settings=Depends(get_app_settings),
    session: Session = Depends(get_session),
):
    """Event-driven sync configuration plus the most recent initial sync."""
    log = session.exec(select(SyncLog).order_by(SyncLog.started_at.desc())).first()
    return ok({
        "mode": "event-driven",
        "enabled": settings.sheets_sync_enabled,
        "configured": settings.sheets_configured,
        "last_initial_sync": log.model_dump(mode="json") if log else None,
    })


@router.post("/event")
async def trigger_initial_sync(
    request: SyncActionRequest,
    admin_email: str = Depends(require_admin),
    settings=Depends(get_app_settings),
    dispatcher=Depends(get_dispatcher),
):
    """Run the one-shot bulk sweep ({"action": "initial"})."""
    if not settings.sheets_sync_enabled:
        raise ForbiddenError("Sheets sync is disabled. Set SHEETS_SYNC_ENABLED=true to enable")
    if request.action != "initial":
        raise ValidationError('Invalid action. Use {"action": "initial"} to sync existing data')

    started = time.monotonic()
    result = await dispatcher.initial_full_sync()
    duration_ms = int((time.monotonic() - started) * 1000)

    if not result.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": result.error or "Initial sync failed",
                "durationMs": duration_ms,
            },
        )
    return ok({"counts": result.counts, "durationMs": duration_ms})
