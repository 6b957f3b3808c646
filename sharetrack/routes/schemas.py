"""Share request models and validation"""
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel

from sharetrack.errors import ShareValidationError

MAX_LINK_LENGTH = 2048
MAX_COOKIE_LENGTH = 8192

_INTEGER_RE = re.compile(r"-?[0-9]+")


class ShareRequest(BaseModel):
    """Raw share request body; fields are checked by `validate_share_request`."""

    cookie: Any = None
    link: Any = None
    limit: Any = None


@dataclass(frozen=True)
class ValidShareRequest:
    cookie: str
    link: str
    limit: int


def _invalid_limit() -> ShareValidationError:
    return ShareValidationError("limit must be a positive integer", code="invalid_limit")


def _parse_limit(value: Any) -> int:
    if isinstance(value, bool):
        raise _invalid_limit()
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise _invalid_limit()
        return int(value)
    if not isinstance(value, str):
        raise _invalid_limit()
    text = value.strip()
    if not _INTEGER_RE.fullmatch(text):
        raise _invalid_limit()
    return int(text)


def _is_valid_link(link: str) -> bool:
    if len(link) > MAX_LINK_LENGTH or any(ch.isspace() for ch in link):
        return False
    parsed = urlparse(link)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _is_valid_cookie(cookie: str) -> bool:
    if len(cookie) > MAX_COOKIE_LENGTH or "\r" in cookie or "\n" in cookie:
        return False
    pairs = [part.strip() for part in cookie.split(";") if part.strip()]
    if not pairs:
        return False
    return all("=" in pair and pair.split("=", 1)[0].strip() for pair in pairs)


def _text(value: Any) -> str:
    # Non-string values are kept as-is so they fail the type checks below.
    return value.strip() if isinstance(value, str) else value


def validate_share_request(request: ShareRequest, max_limit: int) -> ValidShareRequest:
    cookie = _text(request.cookie)
    link = _text(request.link)
    if cookie in (None, "") or link in (None, "") or request.limit is None or request.limit == "":
        raise ShareValidationError("Missing required fields: cookie, link and limit", code="missing_fields")

    limit = _parse_limit(request.limit)
    if limit < 1:
        raise _invalid_limit()
    if limit > max_limit:
        raise ShareValidationError(f"limit must not exceed {max_limit}", code="limit_too_large")
    if not isinstance(link, str) or not _is_valid_link(link):
        raise ShareValidationError("link must be an http(s) URL", code="invalid_link")
    if not isinstance(cookie, str) or not _is_valid_cookie(cookie):
        raise ShareValidationError("cookie must be a list of name=value pairs", code="invalid_cookie")

    return ValidShareRequest(cookie=cookie, link=link, limit=limit)
