"""Pydantic models for viewports, wait strategies and browser captures."""

from __future__ import annotations

from typing import Literal

import pydantic

from pageshot.utils.serialization import snake_to_camel

WaitStrategy = Literal["networkIdle", "domStable", "load", "none"]


class ViewportConfig(pydantic.BaseModel):
    """Viewport and device capabilities for one capture."""

    model_config = pydantic.ConfigDict(
        frozen=True,
        alias_generator=snake_to_camel,
        populate_by_name=True,
    )

    width: int = pydantic.Field(gt=0)
    height: int = pydantic.Field(gt=0)
    device_scale_factor: float = 1
    is_mobile: bool = False
    has_touch: bool = False
    user_agent: str | None = None


class ViewportPreset(ViewportConfig):
    """A named, documented viewport."""

    name: str
    description: str


class ConsoleCaptureResult(pydantic.BaseModel):
    """Console and network diagnostics collected while a page loaded."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
    )

    errors: list[str] = pydantic.Field(default_factory=list)
    warnings: list[str] = pydantic.Field(default_factory=list)
    network_errors: list[str] = pydantic.Field(default_factory=list)
    info: list[str] | None = None
    logs: list[str] | None = None

    def has_issues(self) -> bool:
        """Return True if any error, warning or network error was seen."""
        return bool(self.errors or self.warnings or self.network_errors)


class RawScreenshot(pydantic.BaseModel):
    """Unprocessed PNG bytes plus the diagnostics captured alongside."""

    png: bytes
    console: ConsoleCaptureResult
