"""Relay Custom Exceptions.

Hierarchy:
    RelayException (base)
    ├── MissingTokenException     - no usable authorization token
    ├── ChallengeBlockedException - response classified as an anti-bot challenge
    ├── BrowserSessionException   - engine/context unavailable or not ready
    └── RelayTimeoutException     - browser operation exceeded its timeout
"""


class RelayException(Exception):
    """Base exception for all relay errors."""

    def __init__(self, message: str, url: str | None = None) -> None:
        self.message = message
        self.url = url
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} (URL: {self.url})"
        return self.message


class MissingTokenException(RelayException):
    """Raised when neither the request nor the configuration supplies a token.

    Raised before any browser activity so a misconfigured caller never
    costs a navigation.
    """

    def __init__(self, message: str = "missing token", url: str | None = None) -> None:
        super().__init__(message, url)


class ChallengeBlockedException(RelayException):
    """Raised when a response is classified as an anti-bot challenge.

    The orchestrator never raises this itself (a blocked direct call escalates,
    a blocked fallback is returned as-is). Callers that prefer an exception
    over a blocked result can raise it from the verdict.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.reason = reason  # "status" or "marker"

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"status={self.status_code}")
        if self.reason:
            parts.append(f"reason={self.reason}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class BrowserSessionException(RelayException):
    """Raised when the browser engine or context cannot be used.

    Covers launch/connect failures and access to the context before the
    session reached READY.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        state: str | None = None,
    ) -> None:
        super().__init__(message, url)
        self.state = state

    def __str__(self) -> str:
        base = super().__str__()
        if self.state:
            return f"{base} (state={self.state})"
        return base


class RelayTimeoutException(RelayException):
    """Raised when a navigation, request or in-page evaluation times out."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        timeout_seconds: float | None = None,
        tier: str | None = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_seconds = timeout_seconds
        self.tier = tier  # "direct" or "in_page"

    def __str__(self) -> str:
        parts = [self.message]
        if self.timeout_seconds:
            parts.append(f"timeout={self.timeout_seconds:g}s")
        if self.tier:
            parts.append(f"tier={self.tier}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)
