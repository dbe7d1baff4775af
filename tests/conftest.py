"""Shared test fixtures."""
import re
from datetime import datetime
from typing import Dict, Generator, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from regdesk.models.records import Form, Payment, User  # noqa: F401
from regdesk.models.audit import AuditEntry  # noqa: F401
from regdesk.models.status import ResolutionStatusRecord  # noqa: F401
from regdesk.models.sync import SyncLog  # noqa: F401
from regdesk.api.main import create_app
from regdesk.config import Settings


class FakeSheetsClient:
    """
    In-memory stand-in for SheetsClient.

    Understands the handful of A1 ranges the dispatcher uses:
    "Sheet!A:A" (id column), "Sheet!A5:Z5" / "Sheet!A1" (write from a row),
    "Sheet!A:Z" (append) and "Sheet!A1:ZZ" (clear).
    """

    def __init__(self):
        self.sheets: Dict[str, List[List[str]]] = {}
        self.calls: List[tuple] = []
        self.batch_requests: List[list] = []
        self.fail_with = None

    @staticmethod
    def _split(range_: str):
        name, _, spec = range_.partition("!")
        if name.startswith("'"):
            name = name[1:-1].replace("''", "'")
        return name, spec

    def _check(self, op: str, range_: str):
        self.calls.append((op, range_))
        if self.fail_with is not None:
            raise self.fail_with

    async def get_values(self, range_: str):
        self._check("get", range_)
        name, spec = self._split(range_)
        rows = self.sheets.get(name, [])
        if spec == "A:A":
            return [[r[0]] if r else [] for r in rows]
        return [list(r) for r in rows]

    async def update_values(self, range_: str, values):
        self._check("update", range_)
        name, spec = self._split(range_)
        start = int(re.match(r"[A-Z]+(\d+)", spec).group(1)) - 1
        rows = self.sheets.setdefault(name, [])
        while len(rows) < start:
            rows.append([])
        for offset, row in enumerate(values):
            index = start + offset
            if index < len(rows):
                rows[index] = list(row)
            else:
                rows.append(list(row))

    async def append_values(self, range_: str, values):
        self._check("append", range_)
        name, _ = self._split(range_)
        self.sheets.setdefault(name, []).extend(list(r) for r in values)

    async def clear_values(self, range_: str):
        self._check("clear", range_)
        name, _ = self._split(range_)
        self.sheets[name] = []

    async def get_sheet_ids(self):
        self._check("get_sheet_ids", "")
        return {name: i for i, name in enumerate(self.sheets)}

    async def batch_update(self, requests):
        self._check("batch_update", "")
        self.batch_requests.append(requests)

    def data_rows(self, name: str) -> List[List[str]]:
        """Rows below the header."""
        return self.sheets.get(name, [])[1:]


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="fake_sheets")
def fake_sheets_fixture() -> FakeSheetsClient:
    return FakeSheetsClient()


@pytest.fixture(name="seeded_records")
def seeded_records_fixture(test_session: Session) -> Dict[str, object]:
    """One user owning one form and one pending payment."""
    user = User(
        name="Asha Rao",
        email="asha@example.edu",
        university="IIT Madras",
        email_verified=True,
        created_at=datetime(2025, 1, 15, 2, 0),
    )
    test_session.add(user)
    test_session.commit()
    test_session.refresh(user)

    form = Form(
        owner_id=user.id,
        title="Basketball (Men)",
        status="submitted",
        players=[{"name": "Ravi"}, {"playerName": "Kiran"}],
        coach_name="Coach Menon",
        coach_contact="9876543210",
        created_at=datetime(2025, 1, 15, 3, 0),
    )
    payment = Payment(
        owner_id=user.id,
        amount_in_numbers="2500",
        amount_in_words="Two thousand five hundred",
        payment_mode="upi",
        transaction_id="TXN123",
        payee_name="Asha Rao",
        payment_date=datetime(2025, 1, 16, 4, 30),
        created_at=datetime(2025, 1, 16, 5, 0),
    )
    test_session.add(form)
    test_session.add(payment)
    test_session.commit()
    test_session.refresh(form)
    test_session.refresh(payment)
    return {"user": user, "form": form, "payment": payment}


# ─── API fixtures ─────────────────────────────────────────────────────────────

ADMIN_EMAIL = "admin@example.com"
ADMIN_HEADERS = {"X-Auth-Request-Email": ADMIN_EMAIL}


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(
        _env_file=None,
        admin_emails=f"{ADMIN_EMAIL}, second@example.com",
        google_service_account_email="bot@project.iam.gserviceaccount.com",
        google_private_key="key",
        google_sheet_id="sheet-123",
        sheets_sync_enabled=True,
        auto_sync_enabled=False,
        sync_interval_seconds=60,
    )


@pytest.fixture(name="app")
def app_fixture(settings, engine, fake_sheets):
    """App wired to the in-memory DB and fake sheet. Notifier is a MagicMock."""
    app = create_app(settings=settings, engine=engine, sheets=fake_sheets)
    notifier = MagicMock()
    notifier.drain = AsyncMock()
    app.state.notifier = notifier
    return app


@pytest.fixture(name="client")
def client_fixture(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture(name="admin_headers")
def admin_headers_fixture() -> Dict[str, str]:
    return dict(ADMIN_HEADERS)
