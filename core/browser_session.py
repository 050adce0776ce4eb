"""
Browser session for managing the shared Playwright browser.

This module owns the single browser instance and the single browsing
context that every lookup opens its page in. Instead of launching a browser
per lookup, the session keeps one alive and only creates new pages.

The session heals itself: ensure_ready() tears down and relaunches a browser
that crashed or disconnected. Re-initialization is serialized by an
asyncio.Lock, so concurrent callers never launch two browsers; callers that
queued behind a restart reuse the session it produced.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from playwright.async_api import (
    async_playwright,
    Playwright,
    Browser,
    BrowserContext,
    Page,
)
from core.exceptions import SessionInitError
from core.logger import get_logger
from core.models import SessionState

logger = get_logger("violation_lookup.browser_session")

Launcher = Callable[[], Awaitable[Tuple[Optional[Playwright], Browser]]]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_VIEWPORT = {"width": 1366, "height": 768}


class BrowserSession:
    """
    Shared browser session.

    State machine: UNINITIALIZED -> READY -> DEGRADED -> RESTARTING ->
    READY | UNINITIALIZED. Only ensure_ready(), restart() and close() change
    state; is_healthy() is a pure read.

    Attributes:
        playwright: Playwright instance (None when a custom launcher owns it)
        browser: Chromium browser instance
        context: Shared browser context for creating pages
        initialized: True once the browser and context are both open
    """

    def __init__(
        self, config: Optional[Dict[str, Any]] = None, launcher: Optional[Launcher] = None
    ) -> None:
        """
        Initialize browser session (lazy, nothing is launched here).

        Args:
            config: The "browser" section of the crawler config
            launcher: Coroutine factory returning (playwright, browser); defaults
                to launching headless Chromium
        """
        self._config: Dict[str, Any] = config or {}
        self._launcher: Launcher = launcher or self._launch_chromium
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.initialized = False
        self._state = SessionState.UNINITIALIZED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        """Current session state; a READY session that lost its browser reads as DEGRADED."""
        if self._state == SessionState.READY and not self.is_healthy():
            return SessionState.DEGRADED
        return self._state

    def is_healthy(self) -> bool:
        """True iff the browser exists, is initialized and still connected."""
        if not self.initialized or self.browser is None:
            return False
        try:
            return self.browser.is_connected()
        except Exception as e:
            logger.debug(f"Browser connection check failed: {e}")
            return False

    async def ensure_ready(self) -> None:
        """
        Make sure a usable session exists, relaunching the browser if needed.

        Raises:
            SessionInitError: If the browser cannot be launched. The session is
                left UNINITIALIZED and the next call retries from scratch.
        """
        if self.is_healthy():
            return

        async with self._lock:
            # Another caller may have repaired the session while we waited
            if self.is_healthy():
                return

            if self._state == SessionState.READY:
                self._state = SessionState.DEGRADED
                logger.warning("Browser session is not healthy, restarting...")

            await self._reinitialize()

    async def restart(self) -> None:
        """
        Close and relaunch the browser regardless of its health.

        Raises:
            SessionInitError: If the browser cannot be launched
        """
        async with self._lock:
            logger.warning("Restarting browser session...")
            await self._reinitialize()

    async def new_page(self) -> Page:
        """
        Get a new page in the shared context. The caller must close it.

        Returns:
            A new Page instance

        Raises:
            RuntimeError: If called before ensure_ready() succeeded
        """
        if not self.initialized or self.context is None:
            raise RuntimeError("Browser session not initialized, call ensure_ready() first")
        return await self.context.new_page()

    async def close(self) -> None:
        """Close the browser and release all resources."""
        async with self._lock:
            await self._teardown()
            self._state = SessionState.UNINITIALIZED
            logger.info("Browser session closed")

    async def _reinitialize(self) -> None:
        """Tear down whatever exists and launch a fresh browser. Caller holds the lock."""
        self._state = SessionState.RESTARTING
        await self._teardown()

        try:
            await self._initialize()
        except Exception as e:
            logger.error(f"Failed to initialize browser: {e}")
            await self._teardown()
            self._state = SessionState.UNINITIALIZED
            raise SessionInitError(f"Failed to launch browser: {e}") from e

        self._state = SessionState.READY
        logger.info("Browser session ready")

    async def _initialize(self) -> None:
        logger.info("Launching browser...")
        self.playwright, self.browser = await self._launcher()

        viewport = self._config.get("viewport") or DEFAULT_VIEWPORT
        self.context = await self.browser.new_context(
            user_agent=self._config.get("user_agent", DEFAULT_USER_AGENT),
            viewport={"width": int(viewport["width"]), "height": int(viewport["height"])},
            ignore_https_errors=bool(self._config.get("ignore_https_errors", True)),
        )
        self.initialized = True

    async def _teardown(self) -> None:
        """Close context, browser and playwright, logging (not raising) close errors."""
        self.initialized = False

        if self.context is not None:
            try:
                await self.context.close()
            except Exception as e:
                logger.warning(f"Error closing context: {e}")
            self.context = None

        if self.browser is not None:
            try:
                await self.browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self.browser = None

        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self.playwright = None

    async def _launch_chromium(self) -> Tuple[Optional[Playwright], Browser]:
        """Start Playwright and launch Chromium with the configured flags."""
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=bool(self._config.get("headless", True)),
                args=list(self._config.get("args", [])),
            )
        except Exception:
            await playwright.stop()
            raise
        return playwright, browser
