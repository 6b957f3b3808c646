"""Request ID and access logging middleware"""
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_setup import request_id_ctx

_logger = logging.getLogger("sharetrack")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID (client supplied or generated) and logs its timing."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        start = time.monotonic()
        try:
            _logger.info("Request start method=%s path=%s", request.method, request.url.path)
            response = await call_next(request)
            elapsed_ms = int((time.monotonic() - start) * 1000)
            _logger.info(
                "Request end method=%s path=%s status=%d elapsed_ms=%d",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)
