"""Share task routes"""
import datetime
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sharetrack.config import Settings
from sharetrack.errors import ShareNotFoundError
from sharetrack.services import ShareTaskManager
from sharetrack.state import ShareLedger, ShareTask

from .deps import get_ledger, get_manager, get_settings, require_api_key
from .schemas import ShareRequest, validate_share_request

router = APIRouter(prefix="/api")
_logger = logging.getLogger("sharetrack")


def _find_share(ledger: ShareLedger, share_id: str) -> ShareTask:
    share = ledger.query(share_id)
    if share is None:
        _logger.info("Share not found share_id=%s", share_id)
        raise ShareNotFoundError(share_id)
    return share


@router.post("/share", response_class=JSONResponse, dependencies=[Depends(require_api_key)])
async def api_start_share(
    request: ShareRequest,
    settings: Settings = Depends(get_settings),
    manager: ShareTaskManager = Depends(get_manager),
):
    """
    Start a share task and return its ID right away; poll /api/share/{id} for progress.
    """
    valid = validate_share_request(request, max_limit=settings.share.max_limit)
    share = manager.submit(valid.cookie, valid.link, valid.limit)
    return {
        "status": True,
        "message": "Share process started",
        "share_id": share.id,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


@router.get("/share/{share_id}", response_class=JSONResponse)
async def api_get_share(share_id: str, ledger: ShareLedger = Depends(get_ledger)):
    share = _find_share(ledger, share_id)
    return {"status": True, "share": share.summary()}


@router.get("/share/{share_id}/progress", response_class=JSONResponse)
async def api_get_share_progress(share_id: str, ledger: ShareLedger = Depends(get_ledger)):
    share = _find_share(ledger, share_id)
    return {
        "status": True,
        "progress": {
            "id": share.id,
            "requested": share.requested,
            "success": share.success,
            "failed": share.failed,
            "status": share.status.value,
            "progress": share.progress,
        },
    }


@router.post("/share/{share_id}/cancel", response_class=JSONResponse, dependencies=[Depends(require_api_key)])
async def api_cancel_share(share_id: str, manager: ShareTaskManager = Depends(get_manager)):
    """
    Ask a running share to stop. The share finishes its in-flight request first.
    """
    share = manager.cancel(share_id)
    return {"status": True, "message": "Cancellation requested", "share_id": share.id}
