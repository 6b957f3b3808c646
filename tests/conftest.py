"""
Shared fixtures and test utilities.
"""

import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing the app
os.environ.update({
    "API_KEY_AUTH_ENABLED": "false",
    "LOG_LEVEL": "DEBUG",
})

from sharetrack.app import create_app
from sharetrack.config import AuthConfig, LedgerConfig, PlatformConfig, RetryConfig, Settings, ShareConfig, ShareStrategy
from sharetrack.services import ShareRunner, ShareTaskManager
from sharetrack.state import InMemoryShareLedger

from .fakes import FakeResolver, FakeShareClient

SAMPLE_COOKIE = "c_user=1"
SAMPLE_LINK = "https://example.com/post"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def share_config() -> ShareConfig:
    """Sequential share config with no delays."""
    return ShareConfig(strategy=ShareStrategy.sequential, delay=0.0, rate_limit_pause=0.0)


@pytest.fixture
def platform_config() -> PlatformConfig:
    return PlatformConfig(
        token_page_url="https://platform.test/token-page",
        share_endpoint_url="https://platform.test/share",
        user_agents=["test-agent/1.0"],
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Provide a RetryConfig with test values (no real waiting)."""
    return RetryConfig(max_retries=2, backoff_base=0.0, backoff_multiplier=2.0, jitter=False)


@pytest.fixture
def settings(share_config: ShareConfig, platform_config: PlatformConfig, retry_config: RetryConfig) -> Settings:
    return Settings(
        auth=AuthConfig(enabled=False),
        retry=retry_config,
        platform=platform_config,
        share=share_config,
        ledger=LedgerConfig(history_cap=100),
        log_level="DEBUG",
    )


@pytest.fixture
def auth_settings(settings: Settings) -> Settings:
    """Settings with API key auth enabled."""
    return settings.model_copy(
        update={"auth": AuthConfig(enabled=True, master_key="test-master-key", header_name="X-API-Key")}
    )


@pytest.fixture
def ledger() -> InMemoryShareLedger:
    return InMemoryShareLedger(history_cap=100)


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def fake_share_client() -> FakeShareClient:
    return FakeShareClient()


@pytest.fixture
def manager(
    ledger: InMemoryShareLedger,
    fake_resolver: FakeResolver,
    fake_share_client: FakeShareClient,
    share_config: ShareConfig,
    platform_config: PlatformConfig,
) -> ShareTaskManager:
    runner = ShareRunner(fake_share_client, share_config)
    return ShareTaskManager(ledger, fake_resolver, runner, platform_config)


@pytest.fixture
def app(settings: Settings, ledger: InMemoryShareLedger, fake_resolver: FakeResolver, fake_share_client: FakeShareClient):
    return create_app(settings, ledger=ledger, resolver=fake_resolver, share_client=fake_share_client)


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.manager.shutdown(timeout=1.0)
