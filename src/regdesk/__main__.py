"""
Main entrypoint.

Usage:
    python -m regdesk serve --host 0.0.0.0 --port 8000   # starts the API
    python -m regdesk initial-sync                       # one-shot Sheets backfill
    uvicorn regdesk.api.main:app --host 0.0.0.0 --port 8000
"""
import argparse
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("regdesk.api.main:app", host=host, port=port)


async def _run_initial_sync() -> int:
    from regdesk.config import get_settings
    from regdesk.db.engine import get_engine
    from regdesk.sheets.client import SheetsClient
    from regdesk.sync.dispatcher import SheetsSyncDispatcher

    settings = get_settings()
    if not settings.sheets_sync_enabled:
        logger.error("Sheets sync is disabled. Set SHEETS_SYNC_ENABLED=true to enable.")
        return 1

    dispatcher = SheetsSyncDispatcher(
        get_engine(),
        client_factory=lambda: SheetsClient.from_settings(settings),
        tz_name=settings.sheets_timezone,
    )
    result = await dispatcher.initial_full_sync()
    if not result.success:
        logger.error("Initial sync failed: %s", result.error)
        return 1

    for kind, count in result.counts.items():
        logger.info("Synced %d %s", count, kind)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="regdesk", description="Registration admin backend")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("initial-sync", help="Rewrite every sheet from the record store")

    args = parser.parse_args(argv)
    if args.command == "initial-sync":
        return asyncio.run(_run_initial_sync())
    if args.command == "serve":
        _run_server(args.host, args.port)
        return 0
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
