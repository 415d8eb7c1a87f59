"""
Runtime configuration for capture, encoding and storage.

Centralises all environment variable names and default values.
Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding, type coercion, and validation.
"""

from __future__ import annotations

from typing import Literal

import pydantic
import pydantic_settings

from pageshot.imaging import constants
from pageshot.models.image import OptimizationBudget

SERVER_NAME = "pageshot"
SERVER_VERSION = "1.0.0"
SERVER_DESCRIPTION = (
    "Captures and optimises screenshots from local development environments"
)

BrowserType = Literal["chromium", "firefox", "webkit"]
DEFAULT_BROWSER: BrowserType = "chromium"


class ImageSettings(pydantic_settings.BaseSettings):
    """Encoding limits, overridable per deployment.

    Attributes:
        max_dimension: Hard pixel ceiling on either side.
        optimal_dimension: Long-side target for normal captures.
        min_readable_width: Width floor for tall full-page captures.
        target_byte_size: Byte budget for normal captures.
        full_page_target_byte_size: Byte budget for full-page captures.
        jpeg_quality: Initial JPEG quality.
        min_jpeg_quality: Quality floor.
        quality_step: Quality decrement per iteration.
        time_limit_seconds: Optional wall-time bound per optimisation.
    """

    max_dimension: int = pydantic.Field(
        default=constants.MAX_DIMENSION, validation_alias="PAGESHOT_MAX_DIMENSION"
    )
    optimal_dimension: int = pydantic.Field(
        default=constants.OPTIMAL_DIMENSION, validation_alias="PAGESHOT_OPTIMAL_DIMENSION"
    )
    min_readable_width: int = pydantic.Field(
        default=constants.MIN_READABLE_WIDTH, validation_alias="PAGESHOT_MIN_READABLE_WIDTH"
    )
    target_byte_size: int = pydantic.Field(
        default=constants.TARGET_BYTE_SIZE, validation_alias="PAGESHOT_TARGET_BYTES"
    )
    full_page_target_byte_size: int = pydantic.Field(
        default=constants.FULL_PAGE_TARGET_BYTE_SIZE,
        validation_alias="PAGESHOT_FULL_PAGE_TARGET_BYTES",
    )
    jpeg_quality: int = pydantic.Field(
        default=constants.JPEG_QUALITY, validation_alias="PAGESHOT_JPEG_QUALITY"
    )
    min_jpeg_quality: int = pydantic.Field(
        default=constants.MIN_JPEG_QUALITY, validation_alias="PAGESHOT_MIN_JPEG_QUALITY"
    )
    quality_step: int = pydantic.Field(
        default=constants.QUALITY_STEP, validation_alias="PAGESHOT_QUALITY_STEP"
    )
    time_limit_seconds: float | None = pydantic.Field(
        default=None, validation_alias="PAGESHOT_OPTIMIZE_TIMEOUT"
    )

    def to_budget(self) -> OptimizationBudget:
        """Build a validated ``OptimizationBudget`` from these settings.

        Raises:
            pydantic.ValidationError: The configured limits are
                inconsistent (e.g. floor above initial quality).
        """
        return OptimizationBudget(
            max_dimension=self.max_dimension,
            optimal_dimension=self.optimal_dimension,
            min_readable_width=self.min_readable_width,
            target_byte_size=self.target_byte_size,
            full_page_target_byte_size=self.full_page_target_byte_size,
            initial_quality=self.jpeg_quality,
            quality_floor=self.min_jpeg_quality,
            quality_step=self.quality_step,
            time_limit_seconds=self.time_limit_seconds,
        )


class BrowserSettings(pydantic_settings.BaseSettings):
    """Playwright launch and timeout settings (milliseconds)."""

    browser: BrowserType = pydantic.Field(
        default=DEFAULT_BROWSER, validation_alias="PAGESHOT_BROWSER"
    )
    headless: bool = pydantic.Field(default=True, validation_alias="PAGESHOT_HEADLESS")
    navigation_timeout: int = pydantic.Field(
        default=30000, validation_alias="PAGESHOT_NAVIGATION_TIMEOUT"
    )
    wait_timeout: int = pydantic.Field(default=10000, validation_alias="PAGESHOT_WAIT_TIMEOUT")
    screenshot_timeout: int = pydantic.Field(
        default=30000, validation_alias="PAGESHOT_SCREENSHOT_TIMEOUT"
    )
    auto_install: bool = pydantic.Field(default=True, validation_alias="PAGESHOT_AUTO_INSTALL")

    @pydantic.field_validator("browser", mode="before")
    @classmethod
    def _normalise_browser(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


class StorageSettings(pydantic_settings.BaseSettings):
    """Where and how many screenshots are kept on disk."""

    save_by_default: bool = pydantic.Field(
        default=False, validation_alias="PAGESHOT_SAVE_SCREENSHOTS"
    )
    max_screenshots: int | None = pydantic.Field(
        default=None, validation_alias="PAGESHOT_MAX_SCREENSHOTS"
    )
    screenshot_dir: str | None = pydantic.Field(
        default=None, validation_alias="PAGESHOT_SCREENSHOT_DIR"
    )
