"""
Browser session management for screenshot capture.

A ``BrowserSession`` is an explicit handle owned by its caller
(the FastAPI app lifespan, a test, a script).  It keeps one
browser process alive and gives every capture its own isolated
context and page, so concurrent captures do not share state.
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Literal

from playwright import async_api

from pageshot.browser import installer
from pageshot.browser.console_capture import ConsoleCapture
from pageshot.config import BrowserSettings
from pageshot.models.browser import RawScreenshot, ViewportConfig, WaitStrategy
from pageshot.utils import logger
from pageshot.utils.errors import CaptureError, get_error_message

log = logger.create_logger("BrowserSession")

WAIT_UNTIL: dict[WaitStrategy, Literal["commit", "domcontentloaded", "load", "networkidle"]] = {
    "networkIdle": "networkidle",
    "domStable": "domcontentloaded",
    "load": "load",
    "none": "commit",
}

# Extra settle time after network-idle / DOM-ready so late paints land.
SETTLE_DELAY_MS = 500

_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserSession:
    """
    Owns a Playwright browser and captures screenshots with it.
    """

    def __init__(self, settings: BrowserSettings | None = None) -> None:
        """Create an unstarted session; call ``start`` or use ``async with``."""
        self._settings = settings or BrowserSettings()
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def browser_type(self) -> str:
        return self._settings.browser

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    # ==========================================================================
    # Browser Lifecycle
    # ==========================================================================

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch the configured browser if it is not already running."""
        async with self._lock:
            if self.is_running:
                return
            await self._shutdown()

            browser_type = self._settings.browser
            log.info("Launching browser", {"browser": browser_type, "headless": self._settings.headless})
            self._playwright = await async_api.async_playwright().start()
            try:
                self._browser = await self._launch()
            except Exception as error:
                if not (self._settings.auto_install and installer.is_missing_browser_error(error)):
                    await self._shutdown()
                    raise CaptureError(f"Failed to launch {browser_type}: {get_error_message(error)}") from error
                if not await installer.install_browser(self._settings.browser):
                    await self._shutdown()
                    raise CaptureError(
                        f"Failed to install {browser_type} browser. "
                        f"Please run: python -m playwright install {browser_type}"
                    ) from error
                self._browser = await self._launch()
            log.success("Browser launched", {"browser": browser_type})

    async def _launch(self) -> async_api.Browser:
        assert self._playwright is not None
        launcher = getattr(self._playwright, self._settings.browser)
        launch_kwargs: dict[str, object] = {"headless": self._settings.headless}
        if self._settings.browser == "chromium":
            launch_kwargs["args"] = _CHROMIUM_ARGS
        return await launcher.launch(**launch_kwargs)

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._lock:
            await self._shutdown()

    async def _shutdown(self) -> None:
        if self._browser:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None

    # ==========================================================================
    # Capture
    # ==========================================================================

    async def capture(
        self,
        url: str,
        viewport: ViewportConfig,
        *,
        full_page: bool = False,
        wait_for: WaitStrategy = "networkIdle",
        wait_for_selector: str | None = None,
        console: ConsoleCapture | None = None,
    ) -> RawScreenshot:
        """Load *url* in a fresh context and return a PNG screenshot.

        The page and its context are always closed afterwards, even
        when navigation or the screenshot fails.

        Raises:
            CaptureError: The browser is not running, navigation
                failed, or the screenshot timed out.
        """
        if not self.is_running:
            await self.start()
        assert self._browser is not None

        console = console or ConsoleCapture()
        context: async_api.BrowserContext | None = None
        page: async_api.Page | None = None
        try:
            context = await self._browser.new_context(
                viewport={"width": viewport.width, "height": viewport.height},
                device_scale_factor=viewport.device_scale_factor,
                is_mobile=viewport.is_mobile,
                has_touch=viewport.has_touch,
                user_agent=viewport.user_agent,
            )
            page = await context.new_page()
            console.attach(page)
            await self._navigate(page, url, wait_for, wait_for_selector)
            png = await page.screenshot(
                type="png",
                full_page=full_page,
                timeout=self._settings.screenshot_timeout,
            )
        except async_api.Error as error:
            raise CaptureError(f"Capture of {url} failed: {get_error_message(error)}") from error
        finally:
            console.detach()
            await _close_quietly(page, context)

        log.debug("Screenshot captured", {"url": url, "bytes": len(png), "fullPage": full_page})
        return RawScreenshot(png=png, console=console.get_capture())

    async def _navigate(
        self,
        page: async_api.Page,
        url: str,
        wait_for: WaitStrategy,
        wait_for_selector: str | None,
    ) -> None:
        """Navigate and wait according to *wait_for* and *wait_for_selector*."""
        log.debug("Navigating", {"url": url, "waitFor": wait_for})
        await page.goto(
            url,
            wait_until=WAIT_UNTIL[wait_for],
            timeout=self._settings.navigation_timeout,
        )
        if wait_for_selector:
            await page.wait_for_selector(wait_for_selector, timeout=self._settings.wait_timeout)
        if wait_for in ("networkIdle", "domStable"):
            await asyncio.sleep(SETTLE_DELAY_MS / 1000)


async def _close_quietly(
    page: async_api.Page | None,
    context: async_api.BrowserContext | None,
) -> None:
    """Close whichever of *page* and *context* were opened."""
    for resource in (page, context):
        if resource is None:
            continue
        try:
            await resource.close()
        except Exception as exc:
            log.debug("Context close error (non-fatal)", {"error": str(exc)})
