"""Token resolution: fetch the token page with the caller's cookie and scrape a token out of it."""
import asyncio
import logging
import random
import re
import time
from typing import Awaitable, Callable, List, Optional, Pattern, Protocol, Sequence

import httpx

from sharetrack.config import PlatformConfig, RetryConfig
from sharetrack.config.settings import DEFAULT_MIN_TOKEN_LENGTH

_logger = logging.getLogger("sharetrack")

ClientFactory = Callable[[float], httpx.AsyncClient]
Sleep = Callable[[float], Awaitable[None]]


def mask_secret(value: Optional[str], visible: int = 6) -> str:
    """Shorten a cookie or token for log output."""
    if not value:
        return "-"
    if len(value) <= visible:
        return "***"
    return f"{value[:visible]}***"


def default_client_factory(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


class TokenExtractor(Protocol):
    def extract(self, body: str) -> Optional[str]: ...


class RegexTokenExtractor:
    """Returns the first pattern match at least `min_length` characters long."""

    def __init__(self, patterns: Sequence[str], min_length: int = DEFAULT_MIN_TOKEN_LENGTH):
        self.patterns: List[Pattern[str]] = [re.compile(p) for p in patterns]
        self.min_length = min_length

    def extract(self, body: str) -> Optional[str]:
        for pattern in self.patterns:
            for match in pattern.finditer(body):
                candidate = match.group(1) if pattern.groups else match.group(0)
                if candidate and len(candidate) >= self.min_length:
                    return candidate
        return None


class TokenResolver:
    def __init__(
        self,
        platform: PlatformConfig,
        retry: RetryConfig,
        extractor: Optional[TokenExtractor] = None,
        client_factory: ClientFactory = default_client_factory,
        sleep: Sleep = asyncio.sleep,
    ):
        self.platform = platform
        self.retry = retry
        self.extractor = extractor or RegexTokenExtractor(platform.token_patterns, platform.min_token_length)
        self._client_factory = client_factory
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        delay = self.retry.backoff_base * (self.retry.backoff_multiplier ** attempt)
        if self.retry.jitter and delay > 0:
            delay += random.uniform(0, delay * 0.25)
        return delay

    async def _fetch(self, client: httpx.AsyncClient, cookie: str, user_agent: str) -> Optional[str]:
        response = await client.get(
            self.platform.token_page_url,
            headers={
                "User-Agent": user_agent,
                "Cookie": cookie,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
        )
        if response.status_code >= 400:
            _logger.warning("Token page returned error status=%d", response.status_code)
            return None
        return self.extractor.extract(response.text)

    async def resolve(self, cookie: str, user_agent: str) -> Optional[str]:
        """Return a token, or None once every attempt has failed. Never raises."""
        if not self.platform.token_page_url:
            _logger.error("Token page not configured; set TOKEN_PAGE_URL")
            return None

        attempts = self.retry.max_retries + 1
        start = time.monotonic()
        async with self._client_factory(self.platform.token_timeout) as client:
            for attempt in range(attempts):
                try:
                    token = await self._fetch(client, cookie, user_agent)
                    if token:
                        _logger.info(
                            "Token resolved attempt=%d token=%s elapsed_ms=%d",
                            attempt + 1,
                            mask_secret(token),
                            int((time.monotonic() - start) * 1000),
                        )
                        return token
                    _logger.info("No token found attempt=%d/%d", attempt + 1, attempts)
                except (httpx.HTTPError, httpx.InvalidURL) as exc:
                    _logger.warning("Token fetch failed attempt=%d/%d error=%s", attempt + 1, attempts, exc)

                if attempt < attempts - 1:
                    await self._sleep(self.backoff_delay(attempt))

        _logger.warning("Token resolution gave up attempts=%d cookie=%s", attempts, mask_secret(cookie))
        return None
