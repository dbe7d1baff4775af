"""SQLModel engine singleton and session dependency."""
from typing import Generator

from fastapi import Request
from sqlmodel import Session, SQLModel, create_engine

from regdesk.config import get_settings

_engine = None


def build_engine(database_url: str):
    """Create an engine for database_url and make sure all tables exist."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # sessions cross the threadpool
    engine = create_engine(database_url, connect_args=connect_args)
    init_db(engine)
    return engine


def init_db(engine) -> None:
    """Create all tables (idempotent)."""
    # Import all models so metadata is populated before create_all
    from regdesk.models.records import Form, Payment, User  # noqa
    from regdesk.models.audit import AuditEntry  # noqa
    from regdesk.models.status import ResolutionStatusRecord  # noqa
    from regdesk.models.sync import SyncLog  # noqa
    SQLModel.metadata.create_all(engine)


def get_engine():
    """Return the module-level engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def get_session(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a DB session bound to the app's engine."""
    with Session(request.app.state.engine) as session:
        yield session
