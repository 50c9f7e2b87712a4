"""CLI entry point for Regwatch."""

import argparse
import asyncio
import sys

import orjson
import uvicorn

from regwatch.config import get_settings
from regwatch.core.logging import setup_logging
from regwatch.processing.alerts import AlertService
from regwatch.processing.models import SyncStatus
from regwatch.storage.database import close_database, init_database
from regwatch.sync.orchestrator import ComplianceSyncOrchestrator


async def _run_sync() -> int:
    settings = get_settings()
    db = await init_database(settings.database_url)
    try:
        await db.apply_schema()
        orchestrator = ComplianceSyncOrchestrator(db, AlertService(db))
        results = await orchestrator.run_full()
    finally:
        await close_database()

    payload = {"results": [r.model_dump(mode="json") for r in results]}
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")
    return 1 if any(r.status == SyncStatus.failed for r in results) else 0


async def _init_db() -> None:
    db = await init_database(get_settings().database_url)
    try:
        await db.apply_schema()
    finally:
        await close_database()


def main() -> None:
    parser = argparse.ArgumentParser(description="Regwatch")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the API server and daily scheduler")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.add_argument("--host", default="0.0.0.0", help="Bind host")
    serve.add_argument("--port", type=int, default=8000, help="Bind port")

    subparsers.add_parser("sync", help="Run one full compliance sync and print the results")
    subparsers.add_parser("init-db", help="Create the database schema")

    args = parser.parse_args()
    command = args.command or "serve"

    if command == "serve":
        uvicorn.run(
            "regwatch.main:app",
            host=getattr(args, "host", "0.0.0.0"),
            port=getattr(args, "port", 8000),
            reload=getattr(args, "reload", False),
        )
        return

    setup_logging(get_settings())
    if command == "sync":
        sys.exit(asyncio.run(_run_sync()))
    asyncio.run(_init_db())
