"""
Relay Tiers - Base Executor Abstract Class

Defines the interface both relay tiers implement so the orchestrator can
run the direct attempt and the in-page fallback interchangeably.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from ..utils import parse_response_body

if TYPE_CHECKING:
    from ....core.config import Settings
    from ..request import OutboundRequest
    from ..session import BrowserSession


class TierLevel(IntEnum):
    """
    Tier levels in order of escalation.

    Lower number = cheaper, tried first
    Higher number = heavier, used only after a challenge
    """

    TIER_1_DIRECT = 1  # context.request through the cleared context
    TIER_2_IN_PAGE = 2  # fetch() executed inside a live page


@dataclass
class OutboundResult:
    """
    Standardized result from either tier.

    Carries the upstream status plus either a parsed JSON value or the raw
    text. `is_json` distinguishes a JSON `null` body from an unparseable one.
    """

    status: int
    json_body: Any = None
    text: str = ""
    is_json: bool = False

    # Metadata for logging and metrics
    tier_used: TierLevel = TierLevel.TIER_1_DIRECT
    execution_time_ms: float = 0.0

    # Only populated when the result was synthesised from a failure
    error: str | None = None
    error_type: str | None = None  # "timeout", "browser", "exception"

    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_text(
        cls,
        status: int,
        text: str,
        tier_used: TierLevel = TierLevel.TIER_1_DIRECT,
        execution_time_ms: float = 0.0,
    ) -> "OutboundResult":
        """Build a result from a raw body, parsing JSON when possible."""
        is_json, value = parse_response_body(text)
        return cls(
            status=status,
            json_body=value if is_json else None,
            text="" if is_json else value,
            is_json=is_json,
            tier_used=tier_used,
            execution_time_ms=execution_time_ms,
        )

    @classmethod
    def from_error(
        cls,
        message: str,
        error_type: str = "exception",
        status: int = 500,
        tier_used: TierLevel = TierLevel.TIER_1_DIRECT,
    ) -> "OutboundResult":
        """Build the generic internal-failure result surfaced to callers."""
        return cls(
            status=status,
            json_body={"error": message},
            is_json=True,
            tier_used=tier_used,
            error=message,
            error_type=error_type,
        )

    @property
    def body(self) -> Any:
        """Body as returned to the caller: JSON verbatim or `{"text": raw}`."""
        if self.is_json:
            return self.json_body
        return {"text": self.text}

    @property
    def failed(self) -> bool:
        return self.error is not None


class TierExecutor(ABC):
    """
    Abstract base class for relay tier executors.

    Design Principles:
    - Executors hold no browser state of their own; they borrow the
      context from the shared BrowserSession on every call
    - Executors never raise on non-2xx status; classification is the
      detector's job
    - Browser/transport failures propagate as exceptions
    """

    TIER_LEVEL: TierLevel = TierLevel.TIER_1_DIRECT
    TIER_NAME: str = "base"

    def __init__(self, settings: "Settings", session: "BrowserSession") -> None:
        """
        Initialize executor with settings and the shared browser session.

        Args:
            settings: Application settings containing relay configuration
            session: Process-wide browser session
        """
        self.settings = settings
        self.session = session

    @property
    def timeout_ms(self) -> float:
        return self.settings.RELAY_TIMEOUT_SECONDS * 1000

    @abstractmethod
    async def execute(self, request: "OutboundRequest") -> OutboundResult:
        """
        Perform one upstream call for the given request.

        Requires session.ensure_ready() to have completed.

        Args:
            request: The outbound request to relay

        Returns:
            OutboundResult with status and parsed body
        """
        raise NotImplementedError
