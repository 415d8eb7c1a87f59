"""
Adaptive encoding pipeline for LLM-bound screenshots.

``optimize`` turns an arbitrarily large raw bitmap into a JPEG
that never exceeds the hard dimension ceiling, aims for a byte
budget, keeps tall full-page captures readable, and reports every
transform it applied.

The convergence loop is a fold over an immutable ``EncodeState``:
each step takes a state and returns a new one, so the stages can
be tested in isolation and no mutable locals leak between them.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time

from PIL import Image

from pageshot.imaging import encoder, metadata, strategy
from pageshot.imaging.transforms import ForcedResize, InitialResize, TransformLog
from pageshot.models.image import ImageMetadata, OptimizationBudget, OptimizationResult
from pageshot.utils import logger
from pageshot.utils.errors import ResourceExhausted

log = logger.create_logger("ImageOptimizer")


@dataclasses.dataclass(frozen=True)
class EncodeState:
    """Snapshot of the pipeline between encode calls."""

    pixels: Image.Image
    data: bytes
    quality: int
    log: TransformLog
    resized: bool
    compressed: bool

    @property
    def width(self) -> int:
        return self.pixels.width

    @property
    def height(self) -> int:
        return self.pixels.height

    @property
    def size(self) -> int:
        return len(self.data)


class _Deadline:
    """Wall-clock bound checked between encode calls."""

    def __init__(self, seconds: float | None) -> None:
        self._expires = time.monotonic() + seconds if seconds is not None else None
        self._seconds = seconds

    def check(self, stage: str) -> None:
        if self._expires is not None and time.monotonic() > self._expires:
            raise ResourceExhausted(
                f"Image optimisation exceeded {self._seconds}s during {stage}"
            )


# ============================================================================
# Stages
# ============================================================================


def initial_encode(
    pixels: Image.Image,
    original: ImageMetadata,
    budget: OptimizationBudget,
    transforms: TransformLog,
    resized: bool,
) -> EncodeState:
    """Encode at the initial quality.

    Non-JPEG sources are always reported as compressed and get a
    quality tag; a JPEG source re-encoded at the initial quality
    is not.
    """
    quality = budget.initial_quality
    data = encoder.encode_jpeg(pixels, quality)
    compressed = original.format != "jpeg"
    if compressed:
        transforms = transforms.with_quality(quality)
    return EncodeState(
        pixels=pixels,
        data=data,
        quality=quality,
        log=transforms,
        resized=resized,
        compressed=compressed,
    )


def step_quality(state: EncodeState, budget: OptimizationBudget) -> EncodeState:
    """Drop quality by one step (never below the floor) and re-encode."""
    quality = max(state.quality - budget.quality_step, budget.quality_floor)
    data = encoder.encode_jpeg(state.pixels, quality)
    return dataclasses.replace(
        state,
        data=data,
        quality=quality,
        log=state.log.with_quality(quality),
        compressed=True,
    )


def force_resize(
    state: EncodeState,
    budget: OptimizationBudget,
    target_size: int,
    *,
    keep_readable_width: bool,
) -> EncodeState:
    """Shrink the current pixels once toward *target_size* and re-encode.

    Returns *state* unchanged when the readable-width clamp leaves
    nothing to shrink.
    """
    width, height = strategy.forced_shrink_dimensions(
        state.width,
        state.height,
        state.size,
        target_size,
        min_width=budget.min_readable_width if keep_readable_width else None,
        max_dimension=budget.max_dimension,
    )
    if (width, height) == (state.width, state.height):
        return state
    pixels = encoder.resize(state.pixels, width, height)
    data = encoder.encode_jpeg(pixels, state.quality)
    return dataclasses.replace(
        state,
        pixels=pixels,
        data=data,
        log=state.log.append(ForcedResize((width, height))),
        resized=True,
    )


def converge(
    state: EncodeState,
    budget: OptimizationBudget,
    target_size: int,
    *,
    keep_readable_width: bool,
    deadline: _Deadline | None = None,
) -> EncodeState:
    """Drive *state* toward *target_size*.

    Quality drops step by step to the floor first, since that keeps
    the geometry intact.  If the budget is still missed, a single
    forced resize follows and whatever it produces is accepted.
    """
    deadline = deadline or _Deadline(None)
    while state.size > target_size and state.quality > budget.quality_floor:
        deadline.check("quality reduction")
        state = step_quality(state, budget)
        log.debug("Reduced JPEG quality", {"quality": state.quality, "size": state.size})

    if state.size > target_size:
        deadline.check("forced resize")
        shrunk = force_resize(state, budget, target_size, keep_readable_width=keep_readable_width)
        if shrunk is state:
            log.debug("Forced resize skipped, already at readable width", {"width": state.width})
            return state
        state = shrunk
        log.debug("Forced resize", {
            "width": state.width,
            "height": state.height,
            "size": state.size,
            "overBudget": state.size > target_size,
        })
    return state


# ============================================================================
# Public API
# ============================================================================


def optimize(
    data: bytes,
    *,
    full_page: bool = False,
    budget: OptimizationBudget | None = None,
) -> OptimizationResult:
    """Resize and compress a raw capture for LLM consumption.

    Args:
        data: Raw bitmap bytes, usually a Playwright PNG screenshot.
        full_page: Whether the capture covers the whole scrollable
            page.  Enables the tall-page policy and the relaxed
            byte budget.
        budget: Limits to satisfy.  Defaults to the LLM limits.

    Returns:
        The encoded JPEG and a record of every transform applied.

    Raises:
        DecodeError: *data* is not a usable bitmap.
        EncodeError: The JPEG encoder failed.
        ResourceExhausted: A pixel or time bound in *budget* was hit.
    """
    budget = budget or OptimizationBudget()
    deadline = _Deadline(budget.time_limit_seconds)

    img = metadata.open_image(data, max_pixels=budget.max_pixels)
    original = ImageMetadata(
        width=img.width,
        height=img.height,
        size=len(data),
        format=(img.format or "unknown").lower(),
    )
    pixels = encoder.to_rgb(img)
    target_size = budget.target_for(full_page)

    policy = strategy.select_policy(original.width, original.height, full_page, budget)
    width, height = strategy.target_dimensions(policy, original.width, original.height, budget)

    transforms = TransformLog()
    resized = (width, height) != (original.width, original.height)
    if resized:
        pixels = encoder.resize(pixels, width, height)
        transforms = transforms.append(
            InitialResize(policy, (original.width, original.height), (width, height))
        )
        log.debug("Initial resize", {
            "policy": policy,
            "from": f"{original.width}x{original.height}",
            "to": f"{width}x{height}",
        })

    deadline.check("initial encode")
    if not resized and original.size <= target_size and _is_plain_jpeg(img, original):
        log.debug("JPEG already within budget, passing through", {"size": original.size})
        return _passthrough(data, img, original, budget)

    state = initial_encode(pixels, original, budget, transforms, resized)
    state = converge(
        state,
        budget,
        target_size,
        keep_readable_width=policy == "tall_page",
        deadline=deadline,
    )

    log.debug("Image optimised", {
        "original": f"{original.width}x{original.height}",
        "final": f"{state.width}x{state.height}",
        "originalSize": original.size,
        "finalSize": state.size,
        "quality": state.quality,
    })

    return OptimizationResult(
        data=state.data,
        width=state.width,
        height=state.height,
        size=state.size,
        quality=state.quality,
        transforms=state.log.render(),
        resized=state.resized,
        compressed=state.compressed,
        original=original,
    )


def _is_plain_jpeg(img: Image.Image, original: ImageMetadata) -> bool:
    return original.format == "jpeg" and img.mode in ("RGB", "L")


def _passthrough(
    data: bytes,
    img: Image.Image,
    original: ImageMetadata,
    budget: OptimizationBudget,
) -> OptimizationResult:
    """Return a within-budget JPEG as-is; re-encoding could only grow it."""
    quality = metadata.estimate_jpeg_quality(img) or budget.initial_quality
    return OptimizationResult(
        data=data,
        width=original.width,
        height=original.height,
        size=original.size,
        quality=quality,
        transforms=(),
        resized=False,
        compressed=False,
        original=original,
    )


async def optimize_async(
    data: bytes,
    *,
    full_page: bool = False,
    budget: OptimizationBudget | None = None,
) -> OptimizationResult:
    """Run ``optimize`` in a worker thread so encodes don't block the event loop."""
    return await asyncio.to_thread(optimize, data, full_page=full_page, budget=budget)


def get_image_info(data: bytes) -> ImageMetadata:
    """Return dimensions, size and format of *data* without processing it."""
    return metadata.extract_metadata(data)
