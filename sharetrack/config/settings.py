"""Configuration loaded from environment variables (and .env, if present)."""
import json
import logging
import os
from enum import Enum
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

_logger = logging.getLogger("sharetrack")

DEFAULT_API_KEY_HEADER_NAME = "X-API-Key"
DEFAULT_API_KEY_ENABLED_ENV = "API_KEY_AUTH_ENABLED"
DEFAULT_MASTER_API_KEY_ENV = "API_MASTER_KEY"

DEFAULT_USER_AGENT = "sharetrack/1.0"
DEFAULT_MIN_TOKEN_LENGTH = 31
DEFAULT_TOKEN_PATTERNS = [
    r'"accessToken"\s*:\s*"([\w\-.]+)"',
    r"access_token=([\w\-.]+)",
]


def _env_truthy(value: Optional[str], *, default: bool = False) -> bool:
    """Parse common truthy/falsey strings from environment variables."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        _logger.warning("Ignoring malformed integer env=%s value=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        _logger.warning("Ignoring malformed float env=%s value=%r", name, raw)
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    """Read a JSON array of strings; a bare non-JSON value becomes a one-item list."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            _logger.warning("Ignoring malformed JSON list env=%s", name)
            return list(default)
        items = [str(v) for v in values if str(v).strip()]
        return items or list(default)
    return [raw]


def _env_dict(name: str) -> Dict[str, str]:
    """Read a JSON object of string values; anything else is ignored."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return {}
    try:
        values = json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning("Ignoring malformed JSON object env=%s", name)
        return {}
    if not isinstance(values, dict):
        _logger.warning("Ignoring non-object JSON env=%s", name)
        return {}
    return {str(k): str(v) for k, v in values.items()}


def _env_optional(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


class AuthConfig(BaseModel):
    """
    API key authentication for state-mutating routes.

    - enabled: global switch for API key auth
    - master_key: key value clients must present
    - header_name: header used to pass the key (default X-API-Key)
    """

    enabled: bool = Field(default=False)
    master_key: Optional[str] = Field(default=None)
    header_name: str = Field(default=DEFAULT_API_KEY_HEADER_NAME)

    @classmethod
    def from_env(cls) -> "AuthConfig":
        return cls(
            enabled=_env_truthy(os.getenv(DEFAULT_API_KEY_ENABLED_ENV), default=False),
            master_key=os.getenv(DEFAULT_MASTER_API_KEY_ENV),
            header_name=os.getenv("API_KEY_HEADER_NAME", DEFAULT_API_KEY_HEADER_NAME).strip(),
        )


class RetryConfig(BaseModel):
    """Retry policy for token resolution. Delay for attempt n is base * multiplier ** n."""

    max_retries: int = Field(default=2, ge=0)
    backoff_base: float = Field(default=1.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    jitter: bool = True

    @classmethod
    def from_env(cls) -> "RetryConfig":
        return cls(
            max_retries=_env_int("TOKEN_MAX_RETRIES", 2),
            backoff_base=_env_float("TOKEN_BACKOFF_BASE", 1.0),
            backoff_multiplier=_env_float("TOKEN_BACKOFF_MULTIPLIER", 2.0),
            jitter=_env_truthy(os.getenv("TOKEN_BACKOFF_JITTER"), default=True),
        )


class PlatformConfig(BaseModel):
    """Where the token page and the share endpoint live, and how to talk to them."""

    token_page_url: Optional[str] = None
    share_endpoint_url: Optional[str] = None
    user_agents: List[str] = Field(default_factory=lambda: [DEFAULT_USER_AGENT])
    token_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_TOKEN_PATTERNS))
    min_token_length: int = Field(default=DEFAULT_MIN_TOKEN_LENGTH, ge=1)
    token_timeout: float = Field(default=10.0, gt=0)
    share_timeout: float = Field(default=8.0, gt=0)
    share_params: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "PlatformConfig":
        return cls(
            token_page_url=_env_optional("TOKEN_PAGE_URL"),
            share_endpoint_url=_env_optional("SHARE_ENDPOINT_URL"),
            user_agents=_env_list("USER_AGENTS", [DEFAULT_USER_AGENT]),
            token_patterns=_env_list("TOKEN_PATTERNS", DEFAULT_TOKEN_PATTERNS),
            min_token_length=_env_int("TOKEN_MIN_LENGTH", DEFAULT_MIN_TOKEN_LENGTH),
            token_timeout=_env_float("TOKEN_TIMEOUT", 10.0),
            share_timeout=_env_float("SHARE_TIMEOUT", 8.0),
            share_params=_env_dict("SHARE_EXTRA_PARAMS"),
        )


class ShareStrategy(str, Enum):
    sequential = "sequential"
    batched = "batched"


class ShareConfig(BaseModel):
    strategy: ShareStrategy = ShareStrategy.batched
    batch_size: int = Field(default=5, ge=1)
    delay: float = Field(default=0.05, ge=0)
    delay_jitter: float = Field(default=0.0, ge=0)
    rate_limit_pause: float = Field(default=30.0, ge=0)
    abort_on_failure: bool = False
    max_limit: int = Field(default=500, ge=1)

    @property
    def effective_batch_size(self) -> int:
        if self.strategy == ShareStrategy.sequential:
            return 1
        return self.batch_size

    @classmethod
    def from_env(cls) -> "ShareConfig":
        raw_strategy = os.getenv("SHARE_STRATEGY", ShareStrategy.batched.value).strip().lower()
        try:
            strategy = ShareStrategy(raw_strategy)
        except ValueError:
            _logger.warning("Unknown SHARE_STRATEGY=%r, using batched", raw_strategy)
            strategy = ShareStrategy.batched
        return cls(
            strategy=strategy,
            batch_size=max(1, _env_int("SHARE_BATCH_SIZE", 5)),
            delay=_env_float("SHARE_DELAY", 0.05),
            delay_jitter=_env_float("SHARE_DELAY_JITTER", 0.0),
            rate_limit_pause=_env_float("SHARE_RATE_LIMIT_PAUSE", 30.0),
            abort_on_failure=_env_truthy(os.getenv("SHARE_ABORT_ON_FAILURE"), default=False),
            max_limit=max(1, _env_int("SHARE_MAX_LIMIT", 500)),
        )


class LedgerConfig(BaseModel):
    history_cap: int = Field(default=100, ge=1)
    snapshot_path: Optional[str] = None
    snapshot_interval: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        return cls(
            history_cap=max(1, _env_int("HISTORY_CAP", 100)),
            snapshot_path=_env_optional("SNAPSHOT_PATH"),
            snapshot_interval=_env_float("SNAPSHOT_INTERVAL", 60.0),
        )


class Settings(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    share: ShareConfig = Field(default_factory=ShareConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            auth=AuthConfig.from_env(),
            retry=RetryConfig.from_env(),
            platform=PlatformConfig.from_env(),
            share=ShareConfig.from_env(),
            ledger=LedgerConfig.from_env(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 5000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        _logger.info(
            "Settings loaded auth_enabled=%s master_key_set=%s strategy=%s batch_size=%d history_cap=%d snapshot=%s",
            settings.auth.enabled,
            bool(settings.auth.master_key),
            settings.share.strategy.value,
            settings.share.batch_size,
            settings.ledger.history_cap,
            settings.ledger.snapshot_path or "-",
        )
        return settings
