from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError

from status_monitor import __version__
from status_monitor.auth import verify_admin_password
from status_monitor.config import Configuration, load_default_config
from status_monitor.probe import build_client
from status_monitor.scheduler import TickScheduler
from status_monitor.schema import AdminConfigRequest, ErrorResponse, SuccessResponse
from status_monitor.settings import Settings
from status_monitor.store import (
    KeyValueStore,
    load_config,
    load_state_document,
    open_store,
    save_config_document,
)
from status_monitor.tick import run_tick


logger = structlog.get_logger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


def _query_flag(req: Request, name: str) -> bool:
    return (req.query_params.get(name) or "") == "true"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


def create_app(settings: Settings | None = None, store: KeyValueStore | None = None) -> FastAPI:
    app = FastAPI(title="Status Monitor", version=__version__)
    app.state.settings = settings or Settings()
    if store is None:
        store = open_store(
            app.state.settings.store_kind,
            data_dir=app.state.settings.data_dir,
            db_path=app.state.settings.db_path,
        )
    app.state.store = store
    default_path = app.state.settings.default_config_path
    app.state.default_config = load_default_config(Path(default_path) if default_path else None)
    app.state.index_html = (STATIC_DIR / "index.html").read_text(encoding="utf-8")
    app.state.scheduler = None
    app.state.http_client = None

    @app.on_event("startup")
    async def _startup() -> None:
        s: Settings = app.state.settings
        if not s.scheduler_enabled:
            return
        client = build_client(timeout_seconds=s.probe_timeout_seconds)
        app.state.http_client = client

        async def _tick() -> None:
            await run_tick(
                app.state.store,
                client,
                default_config=app.state.default_config,
                timeout_seconds=s.probe_timeout_seconds,
            )

        scheduler = TickScheduler(_tick, interval_seconds=s.tick_interval_seconds)
        scheduler.start()
        app.state.scheduler = scheduler

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if app.state.scheduler is not None:
            app.state.scheduler.stop()
            app.state.scheduler = None
        if app.state.http_client is not None:
            await app.state.http_client.aclose()
            app.state.http_client = None

    async def _api_payload() -> dict[str, Any]:
        metrics = await asyncio.to_thread(load_state_document, app.state.store)
        config: Configuration = await asyncio.to_thread(
            load_config, app.state.store, default=app.state.default_config
        )
        return {"metrics": metrics, "config": config.to_document()}

    async def _admin_write(req: Request) -> JSONResponse:
        try:
            body = await req.json()
        except ValueError:
            return _error(400, "invalid_request")
        if not isinstance(body, dict):
            return _error(400, "invalid_request")
        try:
            payload = AdminConfigRequest.model_validate(body)
        except ValidationError:
            return _error(400, "invalid_request")

        if not verify_admin_password(payload.password, app.state.settings.admin_password_hash):
            logger.warning("Rejected admin config write", client=req.client.host if req.client else None)
            return _error(401, "Unauthorized")

        if not isinstance(payload.config, dict):
            return _error(400, "config required")

        await asyncio.to_thread(save_config_document, app.state.store, payload.config)
        targets = payload.config.get("urls")
        logger.info("Configuration replaced", targets=len(targets) if isinstance(targets, list) else None)
        return JSONResponse(SuccessResponse().model_dump())

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "ts": time.time()}

    @app.api_route("/", methods=["GET", "POST"])
    async def root(req: Request):
        if _query_flag(req, "api"):
            payload = await _api_payload()
            return JSONResponse(payload, headers={"Access-Control-Allow-Origin": "*"})

        if req.method == "POST" and _query_flag(req, "admin"):
            return await _admin_write(req)

        return HTMLResponse(app.state.index_html, media_type="text/html; charset=utf-8")

    return app
