"""
Relay Browser Session

Owns the single long-lived Playwright engine and browsing context the relay
sends every upstream call through.

Lifecycle:
    UNINITIALIZED --ensure_ready()--> BOOTSTRAPPING --> READY
    READY --refresh()--> BOOTSTRAPPING --> READY   (new context, same engine)
    any --teardown()--> CLOSED

Bootstrap visits the warm-up origins once so the context accumulates the
anti-bot clearance cookies. Refresh only swaps the context; the cookie jar
repopulates through later calls and the in-page fallback's navigation.

Every context replacement bumps `generation`, letting a call that was in
flight during a refresh notice its context is gone and retry once.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .exceptions import BrowserSessionException

if TYPE_CHECKING:
    from ...core.config import Settings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Browser session lifecycle states."""

    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    READY = "ready"
    CLOSED = "closed"


class BrowserSession:
    """
    Process-wide browser engine + browsing context.

    Injected into the orchestrator and both tiers instead of living in module
    globals, so tests can drive the state machine with a fake engine.

    Invariants:
    - At most one engine handle (driver + browser) per session
    - The context is replaced wholesale on refresh, never mutated
    - ensure_ready() and refresh() are serialised by one asyncio.Lock
    """

    def __init__(
        self,
        settings: "Settings",
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        """
        Args:
            settings: Application settings containing relay configuration
            playwright_factory: Returns an object whose `start()` coroutine
                yields a Playwright driver (default: async_playwright)
        """
        self.settings = settings
        self._playwright_factory = playwright_factory

        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

        self._state = SessionState.UNINITIALIZED
        self._generation = 0
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "BrowserSession":
        await self.ensure_ready()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()

    # ============================================
    # Introspection
    # ============================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY

    @property
    def generation(self) -> int:
        """Incremented every time a new context replaces the previous one."""
        return self._generation

    @property
    def context(self) -> BrowserContext:
        """The current browsing context.

        Raises:
            BrowserSessionException: If the session has not reached READY
        """
        if self._context is None or self._state != SessionState.READY:
            raise BrowserSessionException("Browser session is not ready", state=self._state.value)
        return self._context

    @property
    def timeout_ms(self) -> float:
        return self.settings.RELAY_TIMEOUT_SECONDS * 1000

    # ============================================
    # Lifecycle
    # ============================================

    async def ensure_ready(self) -> None:
        """Start the engine, create the context and run the bootstrap sequence.

        Idempotent: a READY session returns immediately, and concurrent first
        callers wait on the lock so the bootstrap runs at most once.

        Raises:
            BrowserSessionException: If the engine or context cannot be created
        """
        if self._state == SessionState.READY:
            return

        async with self._lock:
            if self._state == SessionState.READY:
                return

            self._state = SessionState.BOOTSTRAPPING
            logger.info("Browser session bootstrapping")

            try:
                await self._start_engine()
                self._context = await self._new_context()
                self._generation += 1
                await self._bootstrap()
            except PlaywrightError as e:
                await self._reset()
                raise BrowserSessionException(f"Failed to start browser session: {e}") from e
            except BaseException:
                # Cancellation included
                await self._reset()
                raise

            self._state = SessionState.READY
            logger.info(f"Browser session ready (generation={self._generation})")

    async def refresh(self) -> None:
        """Discard the current context and create a fresh one on the same engine.

        The bootstrap navigation is not repeated. A session that was never
        made ready is simply made ready instead.

        Raises:
            BrowserSessionException: If a new context cannot be created; the
                session is then torn down to UNINITIALIZED so the next
                ensure_ready() relaunches from scratch
        """
        if self._state != SessionState.READY or self._browser is None:
            await self.ensure_ready()
            return

        async with self._lock:
            old_context = self._context
            self._state = SessionState.BOOTSTRAPPING
            self._context = None

            try:
                await self._safe_close(old_context, "context")
                self._context = await self._new_context()
            except PlaywrightError as e:
                await self._reset()
                raise BrowserSessionException(f"Failed to refresh browser context: {e}") from e
            except BaseException:
                await self._reset()
                raise

            self._generation += 1
            self._state = SessionState.READY
            logger.info(f"Browser context refreshed (generation={self._generation})")

    async def teardown(self) -> None:
        """Close context, browser and driver. Never raises."""
        async with self._lock:
            await self._close_all()
            self._state = SessionState.CLOSED
        logger.info("Browser session closed")

    # ============================================
    # Internals
    # ============================================

    async def _start_engine(self) -> None:
        if self._browser is not None:
            return
        # A driver without a browser is left over from an interrupted start
        await self._stop_driver()

        self._playwright = await self._playwright_factory().start()
        ws_endpoint = self.settings.RELAY_BROWSER_WS_ENDPOINT
        if ws_endpoint:
            logger.info("Connecting to remote browser over CDP")
            self._browser = await self._playwright.chromium.connect_over_cdp(ws_endpoint)
        else:
            logger.info(f"Launching local Chromium (headless={self.settings.RELAY_HEADLESS})")
            self._browser = await self._playwright.chromium.launch(headless=self.settings.RELAY_HEADLESS)

    async def _new_context(self) -> BrowserContext:
        if self._browser is None:
            raise BrowserSessionException("Browser engine is not running", state=self._state.value)
        context = await self._browser.new_context(user_agent=self.settings.RELAY_USER_AGENT)
        context.set_default_timeout(self.timeout_ms)
        return context

    async def _bootstrap(self) -> None:
        """Visit each warm-up origin once; individual failures are ignored."""
        page = await self._context.new_page()
        page.set_default_timeout(self.timeout_ms)
        settle_ms = self.settings.RELAY_SETTLE_DELAY_SECONDS * 1000

        try:
            for url in self.settings.RELAY_WARMUP_URLS:
                try:
                    await page.goto(url, wait_until="domcontentloaded")
                    await page.wait_for_timeout(settle_ms)
                    logger.debug(f"Warm-up navigation done: {url}")
                except PlaywrightError as e:
                    logger.warning(f"Warm-up navigation failed (continuing): {url} - {e}")
        finally:
            await self._safe_close(page, "bootstrap page")

    async def _close_all(self) -> None:
        await self._safe_close(self._context, "context")
        self._context = None
        await self._safe_close(self._browser, "browser")
        self._browser = None
        await self._stop_driver()

    async def _stop_driver(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.debug(f"Ignoring error while stopping playwright: {e}")
        self._playwright = None

    async def _reset(self) -> None:
        await self._close_all()
        self._state = SessionState.UNINITIALIZED

    @staticmethod
    async def _safe_close(resource: Any, label: str) -> None:
        if resource is None:
            return
        try:
            await resource.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing {label}: {e}")
