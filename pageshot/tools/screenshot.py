"""
Screenshot tool: capture a page and optimise it for LLM consumption.

Ties the browser session, the encoding pipeline and the optional
screenshot store together and shapes the response as a list of
content items (one image, one JSON text block).
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pydantic

from pageshot.browser import viewports
from pageshot.browser.console_capture import ConsoleCapture
from pageshot.browser.session import BrowserSession
from pageshot.imaging import optimizer
from pageshot.models.browser import ConsoleCaptureResult, WaitStrategy
from pageshot.models.image import OptimizationBudget
from pageshot.storage.screenshots import SaveResult, ScreenshotStore
from pageshot.utils import logger
from pageshot.utils.serialization import snake_to_camel

log = logger.create_logger("ScreenshotTool")

TOOL_NAME = "screenshot"
TOOL_DESCRIPTION = (
    "Capture a screenshot from any URL (typically localhost) with automatic "
    "optimization for LLM consumption. Handles image resizing and compression "
    "to stay within LLM limits. Captures console errors and warnings."
)

_CAMEL = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)


class ScreenshotRequest(pydantic.BaseModel):
    """Input accepted by the screenshot tool."""

    model_config = _CAMEL

    url: str = pydantic.Field(description="Full URL to capture (e.g. http://localhost:3000)")
    viewport: str = pydantic.Field(
        default=viewports.DEFAULT_VIEWPORT,
        description='Preset name or custom "WxH" / "WxH@2x"',
    )
    full_page: bool = pydantic.Field(default=False, description="Capture the full scrollable page")
    wait_for: WaitStrategy = "networkIdle"
    wait_for_selector: str | None = None
    save: bool | None = None
    max_dimension: int | None = pydantic.Field(default=None, gt=0)
    target_byte_size: int | None = pydantic.Field(default=None, gt=0)
    quality: int | None = pydantic.Field(default=None, ge=1, le=100)

    @pydantic.field_validator("url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://", "file://")):
            raise ValueError("url must start with http://, https:// or file://")
        return value


class ViewportInfo(pydantic.BaseModel):
    model_config = _CAMEL

    name: str
    width: int
    height: int
    device_scale_factor: float


class ImageSizeInfo(pydantic.BaseModel):
    model_config = _CAMEL

    width: int
    height: int
    size: int


class ProcessedImageInfo(ImageSizeInfo):
    estimated_tokens: int
    quality: int
    resized: bool
    compressed: bool


class ScreenshotOutput(pydantic.BaseModel):
    """Everything the tool reports about one capture."""

    model_config = _CAMEL

    image_base64: str
    mime_type: str
    viewport: ViewportInfo
    original: ImageSizeInfo
    processed: ProcessedImageInfo
    transforms: list[str]
    console: ConsoleCaptureResult
    url: str
    saved: SaveResult | None = None


async def execute_screenshot(
    session: BrowserSession,
    request: ScreenshotRequest,
    *,
    budget: OptimizationBudget | None = None,
    store: ScreenshotStore | None = None,
) -> ScreenshotOutput:
    """Capture ``request.url`` and return the optimised result.

    Raises:
        CaptureError: The page could not be loaded or captured.
        ImagePipelineError: The capture could not be optimised.
        pydantic.ValidationError: The overrides produce an invalid budget.
    """
    viewport = viewports.parse_viewport(request.viewport)
    is_preset = viewports.get_viewport_preset(request.viewport) is not None
    viewport_name = request.viewport.lower() if is_preset else "custom"

    budget = (budget or OptimizationBudget()).with_overrides(
        max_dimension=request.max_dimension,
        target_byte_size=request.target_byte_size,
        quality=request.quality,
    )

    log.start_timer("capture")
    raw = await session.capture(
        request.url,
        viewport,
        full_page=request.full_page,
        wait_for=request.wait_for,
        wait_for_selector=request.wait_for_selector,
        console=ConsoleCapture(),
    )
    log.end_timer("capture", "Page captured")

    log.start_timer("optimize")
    result = await optimizer.optimize_async(raw.png, full_page=request.full_page, budget=budget)
    log.end_timer("optimize", "Image optimised")

    saved: SaveResult | None = None
    should_save = request.save if request.save is not None else (store is not None and store.save_by_default)
    if should_save:
        saved = await asyncio.to_thread((store or ScreenshotStore()).save, result.data, request.url)

    info = result.transform_info()
    log.info("Screenshot ready", {
        "url": request.url,
        "final": f"{info.final_width}x{info.final_height}",
        "bytes": info.final_size,
        "tokens": result.estimated_tokens,
        "transforms": info.transforms,
    })

    return ScreenshotOutput(
        image_base64=result.base64,
        mime_type=result.mime_type,
        viewport=ViewportInfo(
            name=viewport_name,
            width=viewport.width,
            height=viewport.height,
            device_scale_factor=viewport.device_scale_factor,
        ),
        original=ImageSizeInfo(
            width=info.original_width,
            height=info.original_height,
            size=info.original_size,
        ),
        processed=ProcessedImageInfo(
            width=info.final_width,
            height=info.final_height,
            size=info.final_size,
            estimated_tokens=result.estimated_tokens,
            quality=info.quality,
            resized=info.resized,
            compressed=info.compressed,
        ),
        transforms=info.transforms,
        console=raw.console,
        url=request.url,
        saved=saved,
    )


def format_screenshot_response(output: ScreenshotOutput) -> dict[str, Any]:
    """Shape *output* as an image item plus a JSON metadata text item."""
    metadata = output.model_dump(by_alias=True, exclude={"image_base64", "mime_type"}, exclude_none=True)
    return {
        "content": [
            {"type": "image", "data": output.image_base64, "mimeType": output.mime_type},
            {"type": "text", "text": json.dumps(metadata, indent=2)},
        ],
    }


def format_error_response(request: ScreenshotRequest, message: str) -> dict[str, Any]:
    """Shape a capture failure as a single error text item."""
    payload = {
        "error": True,
        "message": f"Screenshot capture failed: {message}",
        "url": request.url,
        "viewport": request.viewport,
    }
    return {
        "content": [{"type": "text", "text": json.dumps(payload)}],
        "isError": True,
    }
