from .share_runner import (
    CancelToken,
    HttpShareClient,
    ShareClient,
    ShareContext,
    ShareOutcome,
    ShareRunner,
    ShareSummary,
)
from .task_manager import ShareTaskManager
from .token_resolver import RegexTokenExtractor, TokenExtractor, TokenResolver, mask_secret

__all__ = [
    "CancelToken",
    "HttpShareClient",
    "RegexTokenExtractor",
    "ShareClient",
    "ShareContext",
    "ShareOutcome",
    "ShareRunner",
    "ShareSummary",
    "ShareTaskManager",
    "TokenExtractor",
    "TokenResolver",
    "mask_secret",
]
