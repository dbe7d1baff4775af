"""
SheetsSyncDispatcher: mirrors record-store rows into Google Sheets.

Three entry points share one upsert path:

  upsert_record(kind, id)     event-driven, called by ChangeNotifier
  sync_changed_since(since)   polling fallback, called by SyncService
  initial_full_sync()         one-shot backfill (clear + rewrite every sheet)

Idempotency: column A of each worksheet holds the record id. An upsert
updates the row whose column A matches, and appends only when no row does,
so repeated delivery of the same record never creates a duplicate row.

Failures are logged and reported through return values, never raised, and
nothing is retried within the same call. The record itself is the retry
unit: the next poll cycle or the next write re-sends its current state.

All outbound Sheets calls are serialized by a single asyncio.Lock (FIFO),
so updates to one record go out in the order they were triggered.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlmodel import Session, select

from regdesk.models.records import RECORD_MODELS
from regdesk.models.sync import SyncLog
from regdesk.sheets.client import a1_range
from regdesk.sheets.rows import DEFAULT_TIMEZONE, SHEET_CONFIGS, SheetConfig, record_to_row

logger = logging.getLogger(__name__)


@dataclass
class InitialSyncResult:
    success: bool
    counts: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class SweepResult:
    synced: int = 0
    failed: int = 0


class SheetsSyncDispatcher:
    """Serializes record → sheet upserts for users, forms and payments."""

    def __init__(
        self,
        engine,
        sheets=None,
        client_factory: Optional[Callable[[], object]] = None,
        tz_name: str = DEFAULT_TIMEZONE,
    ):
        """
        Args:
            engine: SQLAlchemy engine for the record store.
            sheets: SheetsClient instance (or a fake in tests). If None, it is
                    built on first use from client_factory.
            client_factory: Zero-arg callable returning a SheetsClient. May raise
                    SheetsNotConfiguredError; the error then surfaces as a
                    failed delivery rather than at startup.
            tz_name: Timezone used to render dates in the sheet.
        """
        self.engine = engine
        self._sheets = sheets
        self._client_factory = client_factory
        self.tz_name = tz_name
        self._lock = asyncio.Lock()

    def _client(self):
        if self._sheets is None:
            if self._client_factory is None:
                raise RuntimeError("No Sheets client available")
            self._sheets = self._client_factory()
        return self._sheets

    # ─── Event-driven ────────────────────────────────────────────────────────

    async def upsert_record(self, kind: str, record_id: str) -> bool:
        """
        Push the current state of one record to its worksheet.

        Args:
            kind: "users", "forms" or "payments".
            record_id: Record primary key.

        Returns:
            True if the row was written; False if the record is gone or the
            Sheets call failed (already logged).

        Raises:
            ValueError: if kind is not a synced collection.
        """
        model = RECORD_MODELS.get(kind)
        if model is None:
            raise ValueError(f"Unknown record kind: {kind!r}")

        try:
            with Session(self.engine) as s:
                record = s.get(model, record_id)
                row = record_to_row(kind, record, self.tz_name) if record else None

            if row is None:
                logger.warning("Sheets sync skipped: %s %s not found", kind, record_id)
                return False

            async with self._lock:
                await self._upsert_row(SHEET_CONFIGS[kind], record_id, row)
            return True

        except Exception as exc:
            logger.error("Sheets sync failed for %s %s: %s", kind, record_id, exc)
            return False

    async def _upsert_row(self, config: SheetConfig, record_id: str, row: List[str]) -> None:
        client = self._client()
        id_column = await client.get_values(a1_range(config.name, "A:A"))

        if not id_column:
            # Empty worksheet: lay down the header along with the first row
            await client.update_values(a1_range(config.name, "A1"), [config.headers, row])
            logger.info("Sheets %s: wrote header and first row for %s", config.name, record_id)
            return

        for index, cells in enumerate(id_column):
            if cells and cells[0] == record_id:
                row_number = index + 1  # Sheets rows are 1-based
                await client.update_values(
                    a1_range(config.name, f"A{row_number}:Z{row_number}"), [row]
                )
                logger.info("Sheets %s: updated row %d for %s", config.name, row_number, record_id)
                return

        await client.append_values(a1_range(config.name, "A:Z"), [row])
        logger.info("Sheets %s: appended row for %s", config.name, record_id)

    # ─── Polling fallback ────────────────────────────────────────────────────

    async def sync_changed_since(self, since: Optional[datetime]) -> SweepResult:
        """
        Re-send every record updated at or after `since` (all records if None).

        Per-record failures are counted, not raised.
        """
        result = SweepResult()
        for kind, model in RECORD_MODELS.items():
            with Session(self.engine) as s:
                stmt = select(model.id)
                if since is not None:
                    stmt = stmt.where(model.updated_at >= since)
                record_ids = s.exec(stmt).all()

            for record_id in record_ids:
                if await self.upsert_record(kind, record_id):
                    result.synced += 1
                else:
                    result.failed += 1
        return result

    # ─── Initial bulk sync ───────────────────────────────────────────────────

    async def initial_full_sync(self) -> InitialSyncResult:
        """
        Rewrite every worksheet from scratch: header plus one row per record.

        Clearing first makes the sweep idempotent; running it twice over an
        unchanged store leaves the same rows behind. Writes a SyncLog row.
        """
        counts: Dict[str, int] = {}
        log: Optional[SyncLog] = None
        try:
            log = self._create_sync_log()
            client = self._client()
            async with self._lock:
                for kind, config in SHEET_CONFIGS.items():
                    rows = self._load_rows(kind)
                    await client.clear_values(a1_range(config.name, "A1:ZZ"))
                    await client.update_values(
                        a1_range(config.name, "A1"), [config.headers, *rows]
                    )
                    counts[kind] = len(rows)
                    logger.info("Sheets initial sync: %d %s", len(rows), kind)
                await self._format_sheets(client)

            self._finish_sync_log(log, status="success", counts=counts)
            logger.info("Sheets initial sync completed: %s", counts)
            return InitialSyncResult(success=True, counts=counts)

        except Exception as exc:
            logger.error("Sheets initial sync failed: %s", exc)
            if log is not None:
                self._finish_sync_log(
                    log, status="error", counts=counts, error_message=str(exc)
                )
            return InitialSyncResult(success=False, counts=counts, error=str(exc))

    def _load_rows(self, kind: str) -> List[List[str]]:
        model = RECORD_MODELS[kind]
        with Session(self.engine) as s:
            records = s.exec(select(model).order_by(model.created_at)).all()
            return [record_to_row(kind, r, self.tz_name) for r in records]

    async def _format_sheets(self, client) -> None:
        """Bold/coloured frozen header rows. Non-fatal: failures only warn."""
        try:
            sheet_ids = await client.get_sheet_ids()
            wanted = {c.name for c in SHEET_CONFIGS.values()}
            requests = []
            for title, sheet_id in sheet_ids.items():
                if title not in wanted:
                    continue
                requests.append({
                    "repeatCell": {
                        "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                        "cell": {
                            "userEnteredFormat": {
                                "textFormat": {
                                    "bold": True,
                                    "foregroundColor": {"red": 1, "green": 1, "blue": 1},
                                },
                                "backgroundColor": {"red": 0.26, "green": 0.52, "blue": 0.96},
                                "horizontalAlignment": "CENTER",
                            }
                        },
                        "fields": "userEnteredFormat(textFormat,backgroundColor,horizontalAlignment)",
                    }
                })
                requests.append({
                    "updateSheetProperties": {
                        "properties": {"sheetId": sheet_id, "gridProperties": {"frozenRowCount": 1}},
                        "fields": "gridProperties.frozenRowCount",
                    }
                })
            if requests:
                await client.batch_update(requests)
        except Exception as exc:
            logger.warning("Could not format sheets (non-critical): %s", exc)

    # ─── SyncLog helpers ─────────────────────────────────────────────────────

    def _create_sync_log(self) -> SyncLog:
        log = SyncLog(started_at=datetime.utcnow(), status="running")
        with Session(self.engine) as s:
            s.add(log)
            s.commit()
            s.refresh(log)
        return log

    def _finish_sync_log(
        self,
        log: SyncLog,
        *,
        status: str,
        counts: Dict[str, int],
        error_message: Optional[str] = None,
    ) -> None:
        try:
            with Session(self.engine) as s:
                db_log = s.get(SyncLog, log.id)
                db_log.status = status
                db_log.finished_at = datetime.utcnow()
                db_log.forms_synced = counts.get("forms", 0)
                db_log.users_synced = counts.get("users", 0)
                db_log.payments_synced = counts.get("payments", 0)
                db_log.error_message = error_message
                s.add(db_log)
                s.commit()
        except Exception as exc:
            logger.warning("Could not update sync log %s: %s", log.id, exc)
