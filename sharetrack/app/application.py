"""FastAPI application setup"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sharetrack.config import Settings
from sharetrack.errors import ShareTrackError
from sharetrack.routes import health_router, history_router, shares_router
from sharetrack.services import (
    HttpShareClient,
    ShareClient,
    ShareRunner,
    ShareTaskManager,
    TokenResolver,
)
from sharetrack.state import InMemoryShareLedger, JsonSnapshotStore, ShareLedger, SnapshotScheduler

from .logging_setup import setup_logging
from .middleware import RequestContextMiddleware

_logger = logging.getLogger("sharetrack")


async def _handle_share_error(request: Request, exc: ShareTrackError) -> JSONResponse:
    _logger.info("Request rejected path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@asynccontextmanager
async def _lifespan(app: FastAPI):
    scheduler: Optional[SnapshotScheduler] = app.state.snapshots
    if scheduler is not None:
        scheduler.start()
    _logger.info("sharetrack started")
    try:
        yield
    finally:
        await app.state.manager.shutdown()
        if scheduler is not None:
            await scheduler.stop()
        share_client = app.state.share_client
        if isinstance(share_client, HttpShareClient):
            await share_client.aclose()
        _logger.info("sharetrack stopped")


def create_app(
    settings: Optional[Settings] = None,
    *,
    ledger: Optional[ShareLedger] = None,
    resolver: Optional[TokenResolver] = None,
    share_client: Optional[ShareClient] = None,
) -> FastAPI:
    """Build the app. Collaborators can be injected; anything omitted is built from settings."""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    if ledger is None:
        ledger = InMemoryShareLedger(history_cap=settings.ledger.history_cap)

    snapshots: Optional[SnapshotScheduler] = None
    if settings.ledger.snapshot_path:
        store = JsonSnapshotStore(settings.ledger.snapshot_path)
        ledger.restore(store.load())
        snapshots = SnapshotScheduler(ledger, store, settings.ledger.snapshot_interval)

    resolver = resolver or TokenResolver(settings.platform, settings.retry)
    share_client = share_client or HttpShareClient(settings.platform)
    runner = ShareRunner(share_client, settings.share)
    manager = ShareTaskManager(ledger, resolver, runner, settings.platform)

    app = FastAPI(
        title="sharetrack",
        description="Runs share tasks in the background and tracks their progress",
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.manager = manager
    app.state.share_client = share_client
    app.state.snapshots = snapshots
    app.state.started_at = time.monotonic()

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(ShareTrackError, _handle_share_error)

    app.include_router(shares_router)
    app.include_router(history_router)
    app.include_router(health_router)

    return app


def start_api(settings: Optional[Settings] = None) -> None:
    """Start the API server"""
    settings = settings or Settings.from_env()
    app = create_app(settings)
    _logger.info("Starting uvicorn host=%s port=%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
