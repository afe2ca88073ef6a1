from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import structlog
import uvicorn

from status_monitor.app import create_app
from status_monitor.auth import hash_password
from status_monitor.config import load_default_config
from status_monitor.log import configure_logging
from status_monitor.probe import build_client
from status_monitor.settings import Settings
from status_monitor.store import open_store
from status_monitor.tick import run_tick


logger = structlog.get_logger(__name__)


async def _run_once(settings: Settings) -> int:
    store = open_store(settings.store_kind, data_dir=settings.data_dir, db_path=settings.db_path)
    default_path = settings.default_config_path
    default_config = load_default_config(Path(default_path) if default_path else None)
    async with build_client(timeout_seconds=settings.probe_timeout_seconds) as client:
        report = await run_tick(
            store,
            client,
            default_config=default_config,
            timeout_seconds=settings.probe_timeout_seconds,
        )
    return 0 if report.failed == 0 else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="status-monitor", description="Uptime monitor")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (INFO, WARNING, ...); defaults to LOG_LEVEL",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Serve the status page/API and run ticks on a timer")
    sub.add_parser("tick", help="Run one probe cycle, persist it and exit")
    hp = sub.add_parser("hash-password", help="Print the ADMIN_PASSWORD_HASH value for a password")
    hp.add_argument("password")
    args = parser.parse_args(argv)

    if args.command == "hash-password":
        print(hash_password(args.password))
        return 0

    settings = Settings()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "tick":
        return asyncio.run(_run_once(settings))

    if not settings.admin_password_hash:
        logger.warning("ADMIN_PASSWORD_HASH is not set; configuration writes are disabled")
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
