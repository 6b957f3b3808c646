from .settings import (
    AuthConfig,
    LedgerConfig,
    PlatformConfig,
    RetryConfig,
    Settings,
    ShareConfig,
    ShareStrategy,
)

__all__ = [
    "AuthConfig",
    "LedgerConfig",
    "PlatformConfig",
    "RetryConfig",
    "Settings",
    "ShareConfig",
    "ShareStrategy",
]
