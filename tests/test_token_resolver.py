from typing import List

import httpx
import pytest

from sharetrack.config import PlatformConfig, RetryConfig
from sharetrack.services import RegexTokenExtractor, TokenResolver, mask_secret

TOKEN = "tok_" + "b" * 40
PAGE_WITH_TOKEN = f'<script>{{"accessToken":"{TOKEN}"}}</script>'


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _factory(handler):
    def build(timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=timeout)

    return build


def _resolver(platform_config: PlatformConfig, handler, retry: RetryConfig = None, sleep=None) -> TokenResolver:
    return TokenResolver(
        platform_config,
        retry or RetryConfig(max_retries=2, backoff_base=1.0, backoff_multiplier=2.0, jitter=False),
        client_factory=_factory(handler),
        sleep=sleep or RecordingSleep(),
    )


def test_extractor_uses_patterns_in_order():
    extractor = RegexTokenExtractor([r"first=(\w+)", r"second=(\w+)"], min_length=5)
    assert extractor.extract("second=bbbbbbb first=aaaaaaa") == "aaaaaaa"


def test_extractor_skips_short_matches():
    extractor = RegexTokenExtractor([r"t=(\w+)"], min_length=10)
    assert extractor.extract("t=short t=longenoughvalue") == "longenoughvalue"
    assert extractor.extract("t=short") is None


def test_extractor_without_group_uses_whole_match():
    extractor = RegexTokenExtractor([r"TK\w+"], min_length=4)
    assert extractor.extract("xx TK1234 yy") == "TK1234"


def test_default_extractor_requires_more_than_thirty_characters():
    extractor = RegexTokenExtractor([r"access_token=(\w+)"])
    assert extractor.extract("access_token=" + "x" * 30) is None
    assert extractor.extract("access_token=" + "x" * 31) == "x" * 31


def test_mask_secret():
    assert mask_secret(None) == "-"
    assert mask_secret("abc") == "***"
    assert mask_secret("c_user=12345; xs=abc") == "c_user***"


async def test_resolve_sends_cookie_and_user_agent(platform_config: PlatformConfig):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=PAGE_WITH_TOKEN)

    token = await _resolver(platform_config, handler).resolve("c_user=1", "agent/1.0")

    assert token == TOKEN
    assert len(seen) == 1
    assert str(seen[0].url) == platform_config.token_page_url
    assert seen[0].headers["Cookie"] == "c_user=1"
    assert seen[0].headers["User-Agent"] == "agent/1.0"


async def test_resolve_retries_with_growing_backoff(platform_config: PlatformConfig):
    calls = []
    sleep = RecordingSleep()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("boom", request=request)
        if len(calls) == 2:
            return httpx.Response(200, text="<html>no token here</html>")
        return httpx.Response(200, text=PAGE_WITH_TOKEN)

    token = await _resolver(platform_config, handler, sleep=sleep).resolve("c_user=1", "agent")

    assert token == TOKEN
    assert len(calls) == 3
    assert sleep.delays == [1.0, 2.0]


async def test_resolve_gives_up_after_bounded_attempts(platform_config: PlatformConfig):
    calls = []
    sleep = RecordingSleep()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text=PAGE_WITH_TOKEN)

    token = await _resolver(platform_config, handler, sleep=sleep).resolve("c_user=1", "agent")

    assert token is None
    assert len(calls) == 3
    assert len(sleep.delays) == 2


async def test_resolve_without_token_page_makes_no_request(platform_config: PlatformConfig):
    def handler(request: httpx.Request) -> httpx.Response:
        pytest.fail("no request expected")

    config = platform_config.model_copy(update={"token_page_url": None})
    assert await _resolver(config, handler).resolve("c_user=1", "agent") is None


def test_backoff_jitter_stays_within_bounds(platform_config: PlatformConfig):
    resolver = _resolver(
        platform_config,
        lambda request: httpx.Response(200),
        retry=RetryConfig(max_retries=2, backoff_base=1.0, backoff_multiplier=2.0, jitter=True),
    )
    for attempt, base in enumerate([1.0, 2.0, 4.0]):
        delay = resolver.backoff_delay(attempt)
        assert base <= delay <= base * 1.25
