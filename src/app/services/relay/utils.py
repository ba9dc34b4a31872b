"""Relay Utility Functions.

Provides:
- Response body parsing (JSON with raw-text fallback)
- Upstream header building/merging
- URL helpers for logging
"""

import json
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

if TYPE_CHECKING:
    from ...core.config import Settings


# Query parameters redacted before a URL is logged
SENSITIVE_PARAMS = [
    "token",
    "key",
    "api_key",
    "apikey",
    "secret",
    "password",
    "auth",
]


def parse_response_body(text: str) -> tuple[bool, Any]:
    """Parse a response body as JSON, falling back to the raw text.

    Args:
        text: Raw response body

    Returns:
        Tuple of (is_json, value). When parsing fails, value is the raw text.
    """
    try:
        return True, json.loads(text)
    except (TypeError, ValueError):
        return False, text if text is not None else ""


def build_upstream_headers(token: str, settings: "Settings") -> dict[str, str]:
    """Build the fixed transport header set sent on every upstream call.

    Args:
        token: Caller's authorization token
        settings: Application settings (user agent, referer, origin, token header)

    Returns:
        Dictionary of HTTP headers
    """
    return {
        "accept": "application/json",
        "content-type": "application/json",
        "referer": settings.RELAY_REFERER,
        "origin": settings.RELAY_ORIGIN,
        "user-agent": settings.RELAY_USER_AGENT,
        settings.RELAY_TOKEN_HEADER: token,
    }


def merge_headers(default: dict[str, str], custom: dict[str, str] | None) -> dict[str, str]:
    """Merge custom headers with defaults, custom takes precedence.

    Header names are compared case-insensitively so a caller's `Content-Type`
    replaces the default `content-type` instead of duplicating it.

    Args:
        default: Default headers dictionary
        custom: Custom headers to merge (can be None)

    Returns:
        Merged headers dictionary
    """
    if not custom:
        return default.copy()
    merged = {k: v for k, v in default.items() if k.lower() not in {c.lower() for c in custom}}
    merged.update(custom)
    return merged


def extract_domain(url: str) -> str:
    """Extract domain from URL."""
    return urlparse(url).netloc or ""


def sanitize_url(url: str) -> str:
    """Sanitize URL for logging (remove sensitive query params).

    Args:
        url: Original URL

    Returns:
        Sanitized URL safe for logging
    """
    sanitized = url
    for param in SENSITIVE_PARAMS:
        sanitized = re.sub(
            rf"([?&]{param}=)[^&]*",
            r"\1[REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )
    return sanitized
