"""
Relay Challenge Detector

Pure classification of an upstream result: was it the anti-bot layer
answering instead of the API?

Heuristic by nature. A legitimate upstream 403 (authorization failure) is
indistinguishable from a challenge 403 here and also escalates; a silent
block returning 200 with a JSON body slips through. Both are accepted.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.config import Settings
    from .tiers.base import OutboundResult


# Challenge interstitials are small; only the head of a body is scanned
MAX_SCAN_CHARS = 10000

DEFAULT_BLOCKED_STATUS_CODES = frozenset({403})

DEFAULT_CHALLENGE_MARKERS = (
    "just a moment",
    "checking your browser",
    "cf_chl_opt",
    "attention required! | cloudflare",
)


@dataclass(frozen=True)
class ChallengeVerdict:
    """Outcome of classifying one result."""

    blocked: bool
    reason: str | None = None  # "status" or "marker"
    marker: str | None = None

    def __bool__(self) -> bool:
        return self.blocked


class ChallengeDetector:
    """
    Single pluggable predicate deciding whether a result is a challenge.

    The status set and marker phrases are data, so detection can be tuned
    from configuration without touching the orchestrator.
    """

    def __init__(
        self,
        blocked_status_codes: Iterable[int] = DEFAULT_BLOCKED_STATUS_CODES,
        markers: Iterable[str] = DEFAULT_CHALLENGE_MARKERS,
    ) -> None:
        self.blocked_status_codes = frozenset(blocked_status_codes)
        self.markers = tuple(m for m in markers if m)
        self._regex = (
            re.compile("|".join(re.escape(m) for m in self.markers), re.IGNORECASE) if self.markers else None
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ChallengeDetector":
        return cls(
            blocked_status_codes=settings.RELAY_BLOCKED_STATUS_CODES,
            markers=settings.RELAY_CHALLENGE_MARKERS,
        )

    def classify_raw(self, status: int, text: str | None) -> ChallengeVerdict:
        """Classify a bare (status, body text) pair.

        Args:
            status: HTTP status code
            text: Raw body text; pass None when the body parsed as JSON

        Returns:
            ChallengeVerdict
        """
        if status in self.blocked_status_codes:
            return ChallengeVerdict(blocked=True, reason="status")

        if text and self._regex is not None:
            match = self._regex.search(text[:MAX_SCAN_CHARS])
            if match:
                return ChallengeVerdict(blocked=True, reason="marker", marker=match.group(0))

        return ChallengeVerdict(blocked=False)

    def classify(self, result: "OutboundResult") -> ChallengeVerdict:
        """Classify an OutboundResult. Only a non-JSON body is scanned for markers."""
        return self.classify_raw(result.status, None if result.is_json else result.text)

    def is_blocked(self, result: "OutboundResult") -> bool:
        return self.classify(result).blocked
