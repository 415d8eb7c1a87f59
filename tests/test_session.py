"""Tests for pageshot.browser.session — browser lifecycle and capture."""

from __future__ import annotations

import asyncio
from unittest import mock

import pytest
from playwright import async_api

from pageshot.browser import installer, session
from pageshot.browser.console_capture import ConsoleCapture
from pageshot.browser.session import BrowserSession
from pageshot.config import BrowserSettings
from pageshot.models.browser import ViewportConfig
from pageshot.utils.errors import CaptureError

VIEWPORT = ViewportConfig(width=1440, height=900)


def _settings(**kwargs: object) -> BrowserSettings:
    values = {
        "browser": "chromium",
        "headless": True,
        "navigation_timeout": 30000,
        "wait_timeout": 10000,
        "screenshot_timeout": 30000,
        "auto_install": True,
    }
    values.update(kwargs)
    return BrowserSettings.model_construct(**values)


def _make_page() -> mock.MagicMock:
    page = mock.MagicMock()
    page.goto = mock.AsyncMock()
    page.wait_for_selector = mock.AsyncMock()
    page.screenshot = mock.AsyncMock(return_value=b"\x89PNG fake")
    page.close = mock.AsyncMock()
    return page


def _make_browser(page: mock.MagicMock) -> mock.MagicMock:
    context = mock.MagicMock()
    context.new_page = mock.AsyncMock(return_value=page)
    context.close = mock.AsyncMock()
    browser = mock.MagicMock()
    browser.is_connected.return_value = True
    browser.new_context = mock.AsyncMock(return_value=context)
    browser.close = mock.AsyncMock()
    return browser


def _running_session(page: mock.MagicMock, **settings: object) -> BrowserSession:
    s = BrowserSession(_settings(**settings))
    s._browser = _make_browser(page)
    return s


def _make_playwright(launch: mock.AsyncMock) -> tuple[mock.MagicMock, mock.MagicMock]:
    pw = mock.MagicMock()
    pw.chromium.launch = launch
    pw.firefox.launch = launch
    pw.stop = mock.AsyncMock()
    factory = mock.MagicMock()
    factory.return_value.start = mock.AsyncMock(return_value=pw)
    return factory, pw


class TestWaitUntil:
    def test_mapping(self) -> None:
        assert session.WAIT_UNTIL == {
            "networkIdle": "networkidle",
            "domStable": "domcontentloaded",
            "load": "load",
            "none": "commit",
        }


class TestCapture:
    def test_returns_png_and_console(self) -> None:
        page = _make_page()
        s = _running_session(page)
        raw = asyncio.run(s.capture("http://localhost:3000", VIEWPORT, wait_for="load"))
        assert raw.png == b"\x89PNG fake"
        assert raw.console.errors == []

    def test_context_uses_viewport(self) -> None:
        page = _make_page()
        s = _running_session(page)
        vp = ViewportConfig(width=375, height=667, device_scale_factor=2, is_mobile=True, has_touch=True)
        asyncio.run(s.capture("http://localhost", vp, wait_for="load"))
        kwargs = s._browser.new_context.call_args.kwargs  # type: ignore[union-attr]
        assert kwargs["viewport"] == {"width": 375, "height": 667}
        assert kwargs["device_scale_factor"] == 2
        assert kwargs["is_mobile"] is True
        assert kwargs["has_touch"] is True

    def test_navigation_options(self) -> None:
        page = _make_page()
        s = _running_session(page, navigation_timeout=1234, wait_timeout=99)
        asyncio.run(
            s.capture("http://localhost", VIEWPORT, full_page=True, wait_for="none", wait_for_selector="#app")
        )
        page.goto.assert_awaited_once_with("http://localhost", wait_until="commit", timeout=1234)
        page.wait_for_selector.assert_awaited_once_with("#app", timeout=99)
        assert page.screenshot.call_args.kwargs["full_page"] is True
        assert page.screenshot.call_args.kwargs["type"] == "png"

    def test_settle_delay_after_network_idle(self) -> None:
        page = _make_page()
        s = _running_session(page)
        with mock.patch.object(session.asyncio, "sleep", new=mock.AsyncMock()) as sleep:
            asyncio.run(s.capture("http://localhost", VIEWPORT, wait_for="networkIdle"))
        sleep.assert_awaited_once_with(session.SETTLE_DELAY_MS / 1000)

    def test_navigation_failure_raises_capture_error(self) -> None:
        page = _make_page()
        page.goto.side_effect = async_api.Error("net::ERR_CONNECTION_REFUSED")
        s = _running_session(page)
        console = ConsoleCapture()
        with pytest.raises(CaptureError, match="ERR_CONNECTION_REFUSED"):
            asyncio.run(s.capture("http://localhost:1", VIEWPORT, wait_for="load", console=console))
        page.close.assert_awaited_once()
        context = s._browser.new_context.return_value  # type: ignore[union-attr]
        context.close.assert_awaited_once()
        assert page.remove_listener.call_count == 3

    def test_new_page_failure_closes_context(self) -> None:
        page = _make_page()
        s = _running_session(page)
        context = s._browser.new_context.return_value  # type: ignore[union-attr]
        context.new_page.side_effect = async_api.Error("Target closed")
        with pytest.raises(CaptureError, match="Target closed"):
            asyncio.run(s.capture("http://localhost", VIEWPORT, wait_for="load"))
        context.close.assert_awaited_once()
        page.close.assert_not_awaited()

    def test_new_context_failure_raises_capture_error(self) -> None:
        page = _make_page()
        s = _running_session(page)
        s._browser.new_context.side_effect = async_api.Error("boom")  # type: ignore[union-attr]
        with pytest.raises(CaptureError, match="boom"):
            asyncio.run(s.capture("http://localhost", VIEWPORT, wait_for="load"))

    def test_context_closed_even_if_page_close_fails(self) -> None:
        page = _make_page()
        page.close.side_effect = async_api.Error("already closed")
        s = _running_session(page)
        asyncio.run(s.capture("http://localhost", VIEWPORT, wait_for="load"))
        s._browser.new_context.return_value.close.assert_awaited_once()  # type: ignore[union-attr]

    def test_context_closed_after_success(self) -> None:
        page = _make_page()
        s = _running_session(page)
        asyncio.run(s.capture("http://localhost", VIEWPORT, wait_for="load"))
        page.close.assert_awaited_once()
        s._browser.new_context.return_value.close.assert_awaited_once()  # type: ignore[union-attr]


class TestLifecycle:
    def test_start_launches_chromium_with_args(self) -> None:
        browser = _make_browser(_make_page())
        launch = mock.AsyncMock(return_value=browser)
        factory, _ = _make_playwright(launch)
        s = BrowserSession(_settings())
        with mock.patch.object(session.async_api, "async_playwright", factory):
            asyncio.run(s.start())
        assert s.is_running is True
        assert launch.call_args.kwargs["headless"] is True
        assert "--no-sandbox" in launch.call_args.kwargs["args"]

    def test_start_is_idempotent(self) -> None:
        browser = _make_browser(_make_page())
        launch = mock.AsyncMock(return_value=browser)
        factory, _ = _make_playwright(launch)
        s = BrowserSession(_settings())

        async def run() -> None:
            await s.start()
            await s.start()

        with mock.patch.object(session.async_api, "async_playwright", factory):
            asyncio.run(run())
        launch.assert_awaited_once()

    def test_missing_browser_is_installed_then_retried(self) -> None:
        browser = _make_browser(_make_page())
        launch = mock.AsyncMock(side_effect=[Exception("Executable doesn't exist at /x"), browser])
        factory, _ = _make_playwright(launch)
        s = BrowserSession(_settings(browser="firefox"))
        with (
            mock.patch.object(session.async_api, "async_playwright", factory),
            mock.patch.object(installer, "install_browser", new=mock.AsyncMock(return_value=True)) as install,
        ):
            asyncio.run(s.start())
        install.assert_awaited_once_with("firefox")
        assert launch.await_count == 2
        assert "args" not in launch.call_args.kwargs

    def test_failed_install_raises(self) -> None:
        launch = mock.AsyncMock(side_effect=Exception("Executable doesn't exist at /x"))
        factory, pw = _make_playwright(launch)
        s = BrowserSession(_settings())
        with (
            mock.patch.object(session.async_api, "async_playwright", factory),
            mock.patch.object(installer, "install_browser", new=mock.AsyncMock(return_value=False)),
        ):
            with pytest.raises(CaptureError, match="playwright install chromium"):
                asyncio.run(s.start())
        pw.stop.assert_awaited_once()
        assert s.is_running is False

    def test_other_launch_errors_raise(self) -> None:
        launch = mock.AsyncMock(side_effect=Exception("boom"))
        factory, pw = _make_playwright(launch)
        s = BrowserSession(_settings())
        with mock.patch.object(session.async_api, "async_playwright", factory):
            with pytest.raises(CaptureError, match="Failed to launch chromium: boom"):
                asyncio.run(s.start())
        pw.stop.assert_awaited_once()

    def test_context_manager_closes(self) -> None:
        browser = _make_browser(_make_page())
        factory, pw = _make_playwright(mock.AsyncMock(return_value=browser))

        async def run() -> BrowserSession:
            async with BrowserSession(_settings()) as s:
                assert s.is_running is True
            return s

        with mock.patch.object(session.async_api, "async_playwright", factory):
            s = asyncio.run(run())
        browser.close.assert_awaited_once()
        pw.stop.assert_awaited_once()
        assert s.is_running is False


class TestInstaller:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Executable doesn't exist at /ms-playwright/chromium", True),
            ("Looks like Playwright was just installed. Please run: playwright install", True),
            ("Target closed", False),
        ],
    )
    def test_is_missing_browser_error(self, message: str, expected: bool) -> None:
        assert installer.is_missing_browser_error(Exception(message)) is expected

    def _process(self, returncode: int, stderr: bytes = b"") -> mock.MagicMock:
        process = mock.MagicMock()
        process.communicate = mock.AsyncMock(return_value=(b"", stderr))
        process.returncode = returncode
        return process

    def test_install_success(self) -> None:
        process = self._process(0)
        with mock.patch.object(
            installer.asyncio, "create_subprocess_exec", new=mock.AsyncMock(return_value=process)
        ) as spawn:
            assert asyncio.run(installer.install_browser("webkit")) is True
        assert spawn.call_args.args[1:] == ("-m", "playwright", "install", "webkit")

    def test_install_failure(self) -> None:
        process = self._process(1, b"download failed")
        with mock.patch.object(
            installer.asyncio, "create_subprocess_exec", new=mock.AsyncMock(return_value=process)
        ):
            assert asyncio.run(installer.install_browser("chromium")) is False
