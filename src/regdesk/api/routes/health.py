"""Liveness route."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlmodel import Session

from regdesk.api.deps import get_app_settings
from regdesk.db.engine import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health(session: Session = Depends(get_session), settings=Depends(get_app_settings)):
    """Record store reachability and whether Sheets credentials are present."""
    try:
        session.connection().execute(text("SELECT 1"))
        database = True
    except Exception as exc:
        logger.warning("Health check: database unreachable: %s", exc)
        database = False
    body = {
        "success": database,
        "data": {"database": database, "sheets_configured": settings.sheets_configured},
    }
    return JSONResponse(status_code=200 if database else 503, content=body)
