"""
Relay - Outbound Request Model

One logical call to the upstream: target, method, payload and the caller's
token. Both tiers derive the identical header set from it so the direct
attempt and the in-page fallback are the same call on the wire.
"""

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .utils import build_upstream_headers, merge_headers

BODYLESS_METHODS = frozenset({"GET", "HEAD"})

if TYPE_CHECKING:
    from ...core.config import Settings


@dataclass(frozen=True)
class OutboundRequest:
    """Immutable description of one upstream call."""

    url: str
    token: str
    payload: Any = None
    method: str = "POST"
    extra_headers: dict[str, str] = field(default_factory=dict)

    # Logical operation name, for logging and metrics only
    operation: str = "forward"

    def headers(self, settings: "Settings") -> dict[str, str]:
        """Full header set: fixed transport headers, token, then caller extras."""
        return merge_headers(build_upstream_headers(self.token, settings), self.extra_headers)

    def body(self) -> str | None:
        """JSON-serialized payload, or None when there is nothing to send.

        GET and HEAD never carry a body; browsers reject one in fetch().
        """
        if self.payload is None or self.method.upper() in BODYLESS_METHODS:
            return None
        return json.dumps(self.payload)
