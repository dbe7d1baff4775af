"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from regdesk.api.routes import audit, health, records, status, sync as sync_routes
from regdesk.audit.recorder import AuditRecorder
from regdesk.config import Settings, get_settings
from regdesk.db.engine import build_engine, init_db
from regdesk.errors import RegdeskError
from regdesk.sheets.client import SheetsClient
from regdesk.sync.dispatcher import SheetsSyncDispatcher
from regdesk.sync.notifier import ChangeNotifier
from regdesk.sync.service import SyncService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine=None,
    sheets=None,
) -> FastAPI:
    """
    Build and return the FastAPI app.

    Args:
        settings: Defaults to get_settings().
        engine: Record-store engine; defaults to one built from DATABASE_URL.
        sheets: SheetsClient (or fake); defaults to one built lazily from
                settings on the first sync.
    """
    settings = settings or get_settings()
    if engine is None:
        engine = build_engine(settings.database_url)

    dispatcher = SheetsSyncDispatcher(
        engine,
        sheets=sheets,
        client_factory=lambda: SheetsClient.from_settings(settings),
        tz_name=settings.sheets_timezone,
    )
    notifier = ChangeNotifier(dispatcher, enabled=settings.sheets_sync_enabled)
    sync_service = SyncService(dispatcher, interval_seconds=settings.sync_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables on startup (idempotent)
        init_db(engine)
        if settings.auto_sync_enabled:
            app.state.sync_service.start()
        yield
        app.state.sync_service.shutdown()
        await app.state.notifier.drain()

    app = FastAPI(
        title="Regdesk API",
        description="Registration and payment review backend with Google Sheets mirroring",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.dispatcher = dispatcher
    app.state.notifier = notifier
    app.state.sync_service = sync_service
    app.state.audit = AuditRecorder(engine)

    _register_error_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(records.router, prefix="/admin", tags=["records"])
    app.include_router(status.router, prefix="/admin", tags=["resolution"])
    app.include_router(audit.router, prefix="/admin", tags=["audit"])
    app.include_router(sync_routes.router, prefix="/sync", tags=["sync"])

    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RegdeskError)
    async def regdesk_error(request: Request, exc: RegdeskError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


# Module-level app instance for uvicorn
app = create_app()
