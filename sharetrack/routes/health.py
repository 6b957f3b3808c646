"""Liveness and aggregate statistics"""
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from sharetrack.state import ShareLedger

from .deps import get_ledger

router = APIRouter(prefix="/api")


def _uptime(request: Request) -> float:
    return round(time.monotonic() - request.app.state.started_at, 3)


@router.get("/health", response_class=JSONResponse)
async def api_health(request: Request, ledger: ShareLedger = Depends(get_ledger)):
    return {
        "status": "ok",
        "uptime_seconds": _uptime(request),
        "active_shares": len(ledger.running()),
    }


@router.get("/stats", response_class=JSONResponse)
async def api_stats(request: Request, ledger: ShareLedger = Depends(get_ledger)):
    stats = ledger.stats()
    stats["uptime_seconds"] = _uptime(request)
    return {"status": True, "stats": stats}
