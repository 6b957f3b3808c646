"""Request dependencies: app-owned services and API key checks"""
import logging
from typing import Optional

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from sharetrack.config import AuthConfig, Settings
from sharetrack.config.settings import DEFAULT_MASTER_API_KEY_ENV
from sharetrack.services import ShareTaskManager
from sharetrack.state import ShareLedger

_logger = logging.getLogger("sharetrack")

api_key_header = APIKeyHeader(name=AuthConfig.from_env().header_name, auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ledger(request: Request) -> ShareLedger:
    return request.app.state.ledger


def get_manager(request: Request) -> ShareTaskManager:
    return request.app.state.manager


async def _check_api_key(request: Request, api_key: Optional[str]) -> None:
    auth = get_settings(request).auth
    if not auth.master_key:
        _logger.error("API key auth enabled but master key env var missing env=%s", DEFAULT_MASTER_API_KEY_ENV)
        raise HTTPException(
            status_code=500,
            detail=f"API key auth is enabled but {DEFAULT_MASTER_API_KEY_ENV} is not set.",
        )
    # Apps built with a header name other than the one read from the environment.
    if auth.header_name.lower() != api_key_header.model.name.lower():
        api_key = await APIKeyHeader(name=auth.header_name, auto_error=False)(request)
    if not api_key or api_key != auth.master_key:
        _logger.warning("Authentication failed (invalid/missing API key) path=%s", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")


async def require_api_key(request: Request, api_key: Optional[str] = Security(api_key_header)) -> None:
    """Guards state-mutating routes when API key auth is enabled."""
    if not get_settings(request).auth.enabled:
        return
    await _check_api_key(request, api_key)


async def require_admin_key(request: Request, api_key: Optional[str] = Security(api_key_header)) -> None:
    """Guards destructive routes: always needs API key auth, even when it is globally disabled."""
    if not get_settings(request).auth.enabled:
        _logger.warning("Rejected destructive request with API key auth disabled path=%s", request.url.path)
        raise HTTPException(status_code=403, detail="This operation requires API key auth to be enabled.")
    await _check_api_key(request, api_key)
