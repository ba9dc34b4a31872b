"""
Relay Tier 1 - Direct Context Request Executor

Sends the call through the browsing context's own request API
(`context.request.fetch`). The request shares the context's cookie jar, so
the clearance cookies collected during bootstrap ride along, without the
cost of opening a page.

Never raises on non-2xx: `fail_on_status_code=False`, and the status is
handed to the detector untouched.
"""

import logging
import time
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import RelayTimeoutException
from .base import OutboundResult, TierExecutor, TierLevel

if TYPE_CHECKING:
    from ..request import OutboundRequest

logger = logging.getLogger(__name__)


class Tier1DirectExecutor(TierExecutor):
    """Direct call through the shared context's APIRequestContext."""

    TIER_LEVEL = TierLevel.TIER_1_DIRECT
    TIER_NAME = "direct"

    async def execute(self, request: "OutboundRequest") -> OutboundResult:
        """Issue the call once.

        If a concurrent refresh replaced the context while this call was in
        flight (the generation moved), the resulting Playwright error is not
        the upstream's fault and the call is retried once on the new context.

        Raises:
            RelayTimeoutException: The request exceeded the relay timeout
            playwright Error: Any other transport failure
        """
        start_time = time.time()
        generation = self.session.generation

        try:
            result = await self._fetch(request)
        except PlaywrightError as e:
            if self.session.generation == generation:
                raise
            logger.info(f"Context replaced during direct call, retrying once: {e}")
            await self.session.ensure_ready()
            result = await self._fetch(request)

        result.execution_time_ms = (time.time() - start_time) * 1000
        logger.debug(f"Direct call {request.operation}: status={result.status} json={result.is_json}")
        return result

    async def _fetch(self, request: "OutboundRequest") -> OutboundResult:
        context = self.session.context
        try:
            response = await context.request.fetch(
                request.url,
                method=request.method,
                headers=request.headers(self.settings),
                data=request.body(),
                timeout=self.timeout_ms,
                fail_on_status_code=False,
            )
            text = await response.text()
        except PlaywrightTimeoutError as e:
            raise RelayTimeoutException(
                "Direct request timed out",
                url=request.url,
                timeout_seconds=self.settings.RELAY_TIMEOUT_SECONDS,
                tier=self.TIER_NAME,
            ) from e

        return OutboundResult.from_text(response.status, text, tier_used=self.TIER_LEVEL)
