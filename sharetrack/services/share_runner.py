"""Share execution loop"""
import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol

import httpx

from sharetrack.config import PlatformConfig, ShareConfig
from sharetrack.errors import PlatformNotConfiguredError
from sharetrack.state.models import ShareStatus

from .token_resolver import ClientFactory, default_client_factory

_logger = logging.getLogger("sharetrack")

Sleep = Callable[[float], Awaitable[None]]
ProgressCallback = Callable[[int, int], None]


class ShareOutcome(str, Enum):
    success = "success"
    failed = "failed"
    rate_limited = "rate_limited"


@dataclass(frozen=True)
class ShareContext:
    """Everything one share request needs."""

    link: str
    token: str
    cookie: str
    user_agent: str


@dataclass
class ShareSummary:
    success: int
    failed: int
    total: int
    cancelled: bool = False

    @property
    def status(self) -> ShareStatus:
        if self.cancelled:
            return ShareStatus.cancelled
        return ShareStatus.completed if self.success > 0 else ShareStatus.failed


class CancelToken:
    """Cooperative cancellation flag. Checked between requests, never mid-request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until cancelled or until `timeout` seconds pass. Returns True when cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


class ShareClient(Protocol):
    async def share(self, context: ShareContext) -> ShareOutcome: ...


class HttpShareClient:
    """POSTs one share to the configured endpoint; success means the body carries an id."""

    def __init__(self, platform: PlatformConfig, client_factory: ClientFactory = default_client_factory):
        self.platform = platform
        self._client_factory = client_factory
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._client_factory(self.platform.share_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def share(self, context: ShareContext) -> ShareOutcome:
        if not self.platform.share_endpoint_url:
            raise PlatformNotConfiguredError("Share endpoint not configured; set SHARE_ENDPOINT_URL")

        try:
            response = await self._get_client().post(
                self.platform.share_endpoint_url,
                params={**self.platform.share_params, "link": context.link, "access_token": context.token},
                headers={
                    "User-Agent": context.user_agent,
                    "Cookie": context.cookie,
                    "Accept": "application/json, text/plain, */*",
                },
            )
        except httpx.HTTPError as exc:
            _logger.debug("Share request failed error=%s", exc)
            return ShareOutcome.failed

        if response.status_code == 429:
            return ShareOutcome.rate_limited
        if response.status_code >= 400:
            _logger.debug("Share request rejected status=%d", response.status_code)
            return ShareOutcome.failed
        try:
            body = response.json()
        except ValueError:
            return ShareOutcome.failed
        if isinstance(body, dict) and body.get("id"):
            return ShareOutcome.success
        return ShareOutcome.failed


class ShareRunner:
    """
    Issues up to `count` shares, either one at a time or in fixed-size
    concurrent batches. Batch N+1 never starts before batch N has finished.

    The loop never raises: every per-request problem is counted as a failure.
    It stops early only when the cancel token is set, or after a failing
    request/batch when `abort_on_failure` is enabled.
    """

    def __init__(self, client: ShareClient, config: ShareConfig, sleep: Sleep = asyncio.sleep):
        self.client = client
        self.config = config
        self._sleep = sleep

    def _next_delay(self) -> float:
        delay = self.config.delay
        if self.config.delay_jitter > 0:
            delay += random.uniform(0, self.config.delay_jitter)
        return delay

    async def _attempt(self, context: ShareContext) -> ShareOutcome:
        try:
            return await self.client.share(context)
        except Exception as exc:
            _logger.warning("Share attempt error error=%s", exc)
            return ShareOutcome.failed

    async def _pause(self, seconds: float, cancel: Optional[CancelToken]) -> None:
        """Sleep between requests; a cancel ends the pause early."""
        if cancel is None or seconds <= 0:
            await self._sleep(seconds)
        else:
            await cancel.wait(seconds)

    async def run(
        self,
        context: ShareContext,
        count: int,
        cancel: Optional[CancelToken] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ShareSummary:
        summary = ShareSummary(success=0, failed=0, total=count)
        batch_size = self.config.effective_batch_size
        done = 0

        while done < count:
            if cancel is not None and cancel.cancelled:
                summary.cancelled = True
                _logger.info("Share loop cancelled done=%d/%d", done, count)
                break

            size = min(batch_size, count - done)
            if size == 1:
                outcomes: List[ShareOutcome] = [await self._attempt(context)]
            else:
                outcomes = list(await asyncio.gather(*(self._attempt(context) for _ in range(size))))
            done += size

            batch_success = sum(1 for o in outcomes if o is ShareOutcome.success)
            summary.success += batch_success
            summary.failed += size - batch_success
            if on_progress is not None:
                on_progress(summary.success, summary.failed)

            if self.config.abort_on_failure and batch_success < size:
                _logger.info("Share loop aborted on failure done=%d/%d", done, count)
                break

            if done >= count:
                break
            if any(o is ShareOutcome.rate_limited for o in outcomes):
                _logger.warning("Rate limited, pausing seconds=%s", self.config.rate_limit_pause)
                await self._pause(self.config.rate_limit_pause, cancel)
            else:
                await self._pause(self._next_delay(), cancel)

        _logger.info(
            "Share loop finished success=%d failed=%d total=%d status=%s",
            summary.success,
            summary.failed,
            summary.total,
            summary.status.value,
        )
        return summary
