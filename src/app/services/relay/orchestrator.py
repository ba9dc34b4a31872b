"""
Relay Orchestrator - Clearance Escalation Engine

Composes the relay into the one externally visible operation:

    ensure session ready
      → Tier 1 direct call through the cleared context
      → if the detector flags a challenge:
            refresh the context, then Tier 2 in-page call (once)
      → return whichever result is final

State machine per logical call:

    Start → DirectAttempt → Done
                          ↘ FallbackAttempt → Done

There is no loop: worst case is two sequential timeout windows. A fallback
that is itself blocked is returned as-is.

Failures below this boundary (timeouts, browser errors) are converted into a
500 result carrying the error description; nothing is retried.
"""

import logging
import time
import uuid
from typing import TYPE_CHECKING

from .detector import ChallengeDetector, ChallengeVerdict
from .exceptions import BrowserSessionException, RelayTimeoutException
from .metrics import log_relay_operation
from .session import BrowserSession
from .tiers import OutboundResult, Tier1DirectExecutor, Tier2InPageExecutor, TierExecutor, TierLevel

if TYPE_CHECKING:
    from ...core.config import Settings
    from .request import OutboundRequest

logger = logging.getLogger(__name__)


class RelayOrchestrator:
    """
    Runs one logical call through the direct tier, escalating once to the
    in-page tier when the challenge detector flags the direct result.

    All collaborators are injectable; by default they are built from
    settings around a single shared BrowserSession.
    """

    def __init__(
        self,
        settings: "Settings",
        session: BrowserSession | None = None,
        detector: ChallengeDetector | None = None,
        direct: TierExecutor | None = None,
        fallback: TierExecutor | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Application settings containing relay configuration
            session: Shared browser session (created lazily if omitted)
            detector: Challenge predicate (built from settings if omitted)
            direct: Tier 1 executor
            fallback: Tier 2 executor
        """
        self.settings = settings
        self.session = session or BrowserSession(settings)
        self.detector = detector or ChallengeDetector.from_settings(settings)
        self.direct = direct or Tier1DirectExecutor(settings, self.session)
        self.fallback = fallback or Tier2InPageExecutor(settings, self.session)

        self._metrics = {
            "direct_attempts": 0,
            "fallback_attempts": 0,
            "challenges": 0,
            "refreshes": 0,
            "failures": 0,
        }

    async def execute(self, request: "OutboundRequest") -> OutboundResult:
        """Relay one request, escalating at most once.

        Args:
            request: The outbound request

        Returns:
            The final OutboundResult. Upstream statuses pass through
            untouched; an internal failure yields status 500 with
            body {"error": "<description>"}.
        """
        operation_id = uuid.uuid4().hex[:12]
        total_start = time.time()
        verdict: ChallengeVerdict | None = None
        tier = TierLevel.TIER_1_DIRECT

        logger.info(f"Relay [{operation_id}] {request.operation} {request.method} start")

        try:
            await self.session.ensure_ready()

            self._increment_metric("direct_attempts")
            result = await self.direct.execute(request)

            direct_verdict = self.detector.classify(result)
            if direct_verdict.blocked:
                verdict = direct_verdict
                self._increment_metric("challenges")
                logger.info(
                    f"Relay [{operation_id}] challenge on direct call "
                    f"(status={result.status}, reason={verdict.reason}); escalating to in-page fallback"
                )

                await self.session.refresh()
                self._increment_metric("refreshes")

                tier = TierLevel.TIER_2_IN_PAGE
                self._increment_metric("fallback_attempts")
                result = await self.fallback.execute(request)

                if self.detector.is_blocked(result):
                    logger.warning(
                        f"Relay [{operation_id}] fallback still blocked (status={result.status}); returning as-is"
                    )

        except RelayTimeoutException as e:
            logger.warning(f"Relay [{operation_id}] timeout: {e}")
            result = self._failure(str(e), "timeout", tier)
        except BrowserSessionException as e:
            logger.error(f"Relay [{operation_id}] browser session failure: {e}")
            result = self._failure(str(e), "browser", tier)
        except Exception as e:
            logger.exception(f"Relay [{operation_id}] unexpected failure: {e}")
            result = self._failure(str(e), "exception", tier)

        result.execution_time_ms = (time.time() - total_start) * 1000
        self._record(request, operation_id, result, verdict)
        return result

    def _failure(self, message: str, error_type: str, tier: TierLevel) -> OutboundResult:
        self._increment_metric("failures")
        return OutboundResult.from_error(message, error_type=error_type, tier_used=tier)

    def _record(
        self,
        request: "OutboundRequest",
        operation_id: str,
        result: OutboundResult,
        verdict: ChallengeVerdict | None,
    ) -> None:
        tier_name = self.fallback.TIER_NAME if result.tier_used == TierLevel.TIER_2_IN_PAGE else self.direct.TIER_NAME
        log_relay_operation(
            operation_id=operation_id,
            operation=request.operation,
            url=request.url,
            tier_used=int(result.tier_used),
            tier_name=tier_name,
            status_code=result.status,
            success=not result.failed and result.status < 400,
            execution_time_ms=result.execution_time_ms,
            escalated=verdict is not None,
            challenge_reason=verdict.reason if verdict else None,
            error_type=result.error_type,
            error_message=result.error,
        )

    def _increment_metric(self, key: str) -> None:
        """Increment a metric counter."""
        if key in self._metrics:
            self._metrics[key] += 1

    def get_metrics(self) -> dict[str, int]:
        """Get current metrics snapshot."""
        return self._metrics.copy()

    async def cleanup(self) -> None:
        """Release the browser session. Call during application shutdown."""
        logger.info("RelayOrchestrator cleanup starting...")
        await self.session.teardown()
        logger.info("RelayOrchestrator cleanup complete")


# ============================================
# Convenience Function for Direct Use
# ============================================


async def relay_once(request: "OutboundRequest", settings: "Settings") -> OutboundResult:
    """Relay a single request with a throwaway session.

    Creates an orchestrator, executes the request, and tears the browser
    down. For repeated use, keep one orchestrator for the process instead.
    """
    orchestrator = RelayOrchestrator(settings)
    try:
        return await orchestrator.execute(request)
    finally:
        await orchestrator.cleanup()
