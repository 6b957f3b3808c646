"""History, running shares and ledger maintenance routes"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from sharetrack.state import ShareLedger

from .deps import get_ledger, require_admin_key

router = APIRouter(prefix="/api")


@router.get("/history", response_class=JSONResponse)
async def api_history(
    limit: int = Query(50, ge=1, description="Number of most recent shares to return"),
    ledger: ShareLedger = Depends(get_ledger),
):
    shares = ledger.list(limit)
    return {"status": True, "history": [share.summary() for share in shares]}


@router.get("/running-shares", response_class=JSONResponse)
async def api_running_shares(ledger: ShareLedger = Depends(get_ledger)):
    return {"status": True, "running_shares": [share.summary() for share in ledger.running()]}


@router.post("/clear-history", response_class=JSONResponse, dependencies=[Depends(require_admin_key)])
async def api_clear_history(ledger: ShareLedger = Depends(get_ledger)):
    """
    Remove finished shares from history. Running shares are kept.
    """
    removed = ledger.clear()
    return {"status": True, "message": "History cleared", "removed": removed}
