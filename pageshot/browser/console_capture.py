"""
Console and network diagnostics capture for a Playwright page.

Errors and warnings are always kept; ``info`` and ``log`` messages
only when asked for.  Each category is capped so a noisy page
cannot bloat the response.
"""

from __future__ import annotations

from playwright import async_api

from pageshot.models.browser import ConsoleCaptureResult

MAX_MESSAGES = 50
MAX_URL_LENGTH = 100


def truncate_url(url: str, max_length: int = MAX_URL_LENGTH) -> str:
    """Shorten *url* to *max_length* characters with a trailing ellipsis."""
    if len(url) <= max_length:
        return url
    return url[: max_length - 3] + "..."


class ConsoleCapture:
    """Collects console messages and failed requests from one page."""

    def __init__(
        self,
        *,
        capture_info: bool = False,
        capture_logs: bool = False,
        max_messages: int = MAX_MESSAGES,
    ) -> None:
        self._capture_info = capture_info
        self._capture_logs = capture_logs
        self._max_messages = max_messages
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._network_errors: list[str] = []
        self._info: list[str] = []
        self._logs: list[str] = []
        self._page: async_api.Page | None = None

    # ==========================================================================
    # Page wiring
    # ==========================================================================

    def attach(self, page: async_api.Page) -> None:
        """Start listening to *page* events."""
        page.on("console", self._on_console)
        page.on("response", self._on_response)
        page.on("requestfailed", self._on_request_failed)
        self._page = page

    def detach(self) -> None:
        """Stop listening; safe to call more than once."""
        if self._page is None:
            return
        self._page.remove_listener("console", self._on_console)
        self._page.remove_listener("response", self._on_response)
        self._page.remove_listener("requestfailed", self._on_request_failed)
        self._page = None

    # ==========================================================================
    # Event handlers
    # ==========================================================================

    def _on_console(self, message: async_api.ConsoleMessage) -> None:
        kind = message.type
        if kind == "error":
            self._add(self._errors, message.text)
        elif kind == "warning":
            self._add(self._warnings, message.text)
        elif kind == "info" and self._capture_info:
            self._add(self._info, message.text)
        elif kind == "log" and self._capture_logs:
            self._add(self._logs, message.text)

    def _on_response(self, response: async_api.Response) -> None:
        if response.status >= 400:
            request = response.request
            self._add(
                self._network_errors,
                f"{request.method} {truncate_url(request.url)} {response.status}",
            )

    def _on_request_failed(self, request: async_api.Request) -> None:
        failure = request.failure
        if failure:
            self._add(
                self._network_errors,
                f"{request.method} {truncate_url(request.url)} FAILED: {failure}",
            )

    def _add(self, bucket: list[str], message: str) -> None:
        """Append *message*, adding one truncation marker at the cap."""
        if len(bucket) < self._max_messages:
            bucket.append(message)
        elif len(bucket) == self._max_messages:
            bucket.append(f"... (truncated, max {self._max_messages} messages)")

    # ==========================================================================
    # Results
    # ==========================================================================

    def get_capture(self) -> ConsoleCaptureResult:
        """Return a snapshot of everything captured so far."""
        return ConsoleCaptureResult(
            errors=list(self._errors),
            warnings=list(self._warnings),
            network_errors=list(self._network_errors),
            info=list(self._info) if self._capture_info else None,
            logs=list(self._logs) if self._capture_logs else None,
        )

    def clear(self) -> None:
        """Drop every captured message."""
        for bucket in (self._errors, self._warnings, self._network_errors, self._info, self._logs):
            bucket.clear()

    def has_issues(self) -> bool:
        """Return True if any error, warning or network error was seen."""
        return bool(self._errors or self._warnings or self._network_errors)
