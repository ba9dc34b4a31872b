"""
Relay Tier 2 - In-Page Fetch Executor

Used only after Tier 1 was answered by the challenge layer.

How it works:
1. Open a disposable page in the shared context
2. Navigate to the upstream's public origin (DOMContentLoaded only), which
   also gives the challenge layer a chance to re-issue clearance cookies
3. Put the token in localStorage, where the real web client keeps it
4. Run fetch() inside the page: same origin, cookies included, and the
   transport fingerprint is that of an ordinary browser tab
5. Close the page, whatever happened

The page hands back status + raw text; JSON parsing happens here in Python.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import RelayException, RelayTimeoutException
from .base import OutboundResult, TierExecutor, TierLevel

if TYPE_CHECKING:
    from ..request import OutboundRequest

logger = logging.getLogger(__name__)


STORE_TOKEN_SCRIPT = """
([key, value]) => { window.localStorage.setItem(key, value); }
"""

IN_PAGE_FETCH_SCRIPT = """
async ({ url, method, headers, body }) => {
    const resp = await fetch(url, {
        method,
        headers,
        body: body === null ? undefined : body,
        credentials: "include",
        mode: "cors",
    });
    return { status: resp.status, text: await resp.text() };
}
"""


class Tier2InPageExecutor(TierExecutor):
    """Fallback that re-executes the call from inside a live page."""

    TIER_LEVEL = TierLevel.TIER_2_IN_PAGE
    TIER_NAME = "in_page"

    async def execute(self, request: "OutboundRequest") -> OutboundResult:
        """Run the request from a disposable page.

        Raises:
            RelayTimeoutException: Navigation or the in-page fetch timed out
            playwright Error: Any other browser failure
        """
        start_time = time.time()
        page = await self.session.context.new_page()
        page.set_default_timeout(self.timeout_ms)

        try:
            await self._navigate(page, request)
            await self._store_token(page, request.token)
            raw = await self._evaluate_fetch(page, request)
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing fallback page: {e}")

        result = OutboundResult.from_text(
            int(raw.get("status") or 0),
            raw.get("text") or "",
            tier_used=self.TIER_LEVEL,
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        logger.debug(f"In-page call {request.operation}: status={result.status} json={result.is_json}")
        return result

    async def _navigate(self, page: Any, request: "OutboundRequest") -> None:
        url = self.settings.RELAY_FALLBACK_WARMUP_URL
        try:
            await page.goto(url, wait_until="domcontentloaded")
        except PlaywrightTimeoutError as e:
            raise RelayTimeoutException(
                "Fallback warm-up navigation timed out",
                url=url,
                timeout_seconds=self.settings.RELAY_TIMEOUT_SECONDS,
                tier=self.TIER_NAME,
            ) from e

    async def _store_token(self, page: Any, token: str) -> None:
        key = self.settings.RELAY_LOCAL_STORAGE_TOKEN_KEY
        try:
            await page.evaluate(STORE_TOKEN_SCRIPT, [key, token])
        except PlaywrightError as e:
            logger.debug(f"Could not write token to localStorage (continuing): {e}")

    async def _evaluate_fetch(self, page: Any, request: "OutboundRequest") -> dict[str, Any]:
        # page.evaluate takes no timeout of its own
        try:
            raw = await asyncio.wait_for(
                page.evaluate(
                    IN_PAGE_FETCH_SCRIPT,
                    {
                        "url": request.url,
                        "method": request.method,
                        "headers": request.headers(self.settings),
                        "body": request.body(),
                    },
                ),
                timeout=self.settings.RELAY_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError as e:
            raise RelayTimeoutException(
                "In-page fetch timed out",
                url=request.url,
                timeout_seconds=self.settings.RELAY_TIMEOUT_SECONDS,
                tier=self.TIER_NAME,
            ) from e

        if not isinstance(raw, dict):
            raise RelayException(f"Unexpected in-page fetch result: {raw!r}", url=request.url)
        return raw
