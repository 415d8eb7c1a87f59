"""
On-demand installation of Playwright browser binaries.

Used when a launch fails because the browser executable is not
present yet, typically on the first run after ``pip install``.
"""

from __future__ import annotations

import asyncio
import sys

from pageshot.config import BrowserType
from pageshot.utils import logger

log = logger.create_logger("BrowserInstaller")

INSTALL_TIMEOUT_SECONDS = 300

_MISSING_EXECUTABLE_MARKERS = (
    "Executable doesn't exist",
    "playwright install",
)


def is_missing_browser_error(error: BaseException) -> bool:
    """Return True if *error* looks like Playwright's missing-binary failure."""
    message = str(error)
    return any(marker in message for marker in _MISSING_EXECUTABLE_MARKERS)


async def install_browser(browser_type: BrowserType) -> bool:
    """Run ``python -m playwright install <browser_type>``.

    Returns:
        True when the install command exits cleanly.
    """
    log.info("Installing browser", {"browser": browser_type})
    log.start_timer("browser-install")
    process = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "playwright",
        "install",
        browser_type,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, stderr = await asyncio.wait_for(process.communicate(), INSTALL_TIMEOUT_SECONDS)
    except TimeoutError:
        process.kill()
        await process.wait()
        log.error("Browser install timed out", {"browser": browser_type})
        return False
    finally:
        log.end_timer("browser-install")

    if process.returncode != 0:
        log.error("Browser install failed", {
            "browser": browser_type,
            "error": stderr.decode("utf-8", "replace")[:500],
        })
        return False

    log.success("Browser installed", {"browser": browser_type})
    return True
