"""Pydantic models for raw captures, encoding budgets, and optimisation results."""

from __future__ import annotations

import base64
import math
from typing import Literal

import pydantic

from pageshot.imaging import constants
from pageshot.utils.serialization import snake_to_camel

ResizePolicy = Literal["none", "hard_limit", "optimal", "tall_page"]


class ImageMetadata(pydantic.BaseModel):
    """Dimensions, byte length and source codec of a raw bitmap."""

    model_config = pydantic.ConfigDict(frozen=True)

    width: int
    height: int
    size: int
    format: str


class OptimizationBudget(pydantic.BaseModel):
    """Limits the encoding pipeline must satisfy for one run.

    All values are fixed for the duration of an ``optimize`` call.
    Inconsistent budgets are rejected here, at construction, so the
    convergence loop never has to second-guess its inputs.

    Attributes:
        max_dimension: Hard ceiling on either side, never exceeded.
        optimal_dimension: Soft long-side target for normal captures.
        min_readable_width: Width floor for tall full-page captures.
        target_byte_size: Byte budget for normal captures.
        full_page_target_byte_size: Relaxed byte budget for full pages.
        initial_quality: First JPEG quality tried.
        quality_floor: Lowest JPEG quality the loop will use.
        quality_step: Amount quality drops per iteration.
        full_page_headroom: Tall pages are capped at
            ``max_dimension - full_page_headroom`` pixels high.
        max_pixels: Optional host bound on decoded pixel count.
        time_limit_seconds: Optional host bound on wall time.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    max_dimension: int = pydantic.Field(default=constants.MAX_DIMENSION, gt=0)
    optimal_dimension: int = pydantic.Field(default=constants.OPTIMAL_DIMENSION, gt=0)
    min_readable_width: int = pydantic.Field(default=constants.MIN_READABLE_WIDTH, gt=0)
    target_byte_size: int = pydantic.Field(default=constants.TARGET_BYTE_SIZE, gt=0)
    full_page_target_byte_size: int = pydantic.Field(
        default=constants.FULL_PAGE_TARGET_BYTE_SIZE, gt=0
    )
    initial_quality: int = pydantic.Field(default=constants.JPEG_QUALITY, ge=1, le=100)
    quality_floor: int = pydantic.Field(default=constants.MIN_JPEG_QUALITY, ge=1, le=100)
    quality_step: int = pydantic.Field(default=constants.QUALITY_STEP, gt=0)
    full_page_headroom: int = pydantic.Field(default=constants.FULL_PAGE_HEADROOM, ge=0)
    max_pixels: int | None = pydantic.Field(default=None, gt=0)
    time_limit_seconds: float | None = pydantic.Field(default=None, gt=0)

    @pydantic.model_validator(mode="after")
    def _check_consistency(self) -> OptimizationBudget:
        if self.optimal_dimension > self.max_dimension:
            raise ValueError("optimal_dimension must not exceed max_dimension")
        if self.min_readable_width > self.max_dimension:
            raise ValueError("min_readable_width must not exceed max_dimension")
        if self.quality_floor > self.initial_quality:
            raise ValueError("quality_floor must not exceed initial_quality")
        if self.full_page_headroom >= self.max_dimension:
            raise ValueError("full_page_headroom must be smaller than max_dimension")
        return self

    @property
    def tall_page_max_height(self) -> int:
        """Height cap applied to tall full-page captures."""
        return self.max_dimension - self.full_page_headroom

    def target_for(self, full_page: bool) -> int:
        """Return the byte budget for a normal or full-page capture."""
        return self.full_page_target_byte_size if full_page else self.target_byte_size

    def with_overrides(
        self,
        *,
        max_dimension: int | None = None,
        target_byte_size: int | None = None,
        quality: int | None = None,
    ) -> OptimizationBudget:
        """Return a new budget with caller-supplied overrides applied.

        ``max_dimension`` replaces the *optimal* long-side target
        (the hard ceiling stays in force and caps it).
        ``quality`` replaces the initial JPEG quality.  The result
        is validated like any other budget.
        """
        values = self.model_dump()
        if max_dimension is not None:
            values["optimal_dimension"] = min(max_dimension, self.max_dimension)
        if target_byte_size is not None:
            values["target_byte_size"] = target_byte_size
        if quality is not None:
            values["initial_quality"] = quality
        return OptimizationBudget.model_validate(values)


class TransformInfo(pydantic.BaseModel):
    """Metadata block describing what the pipeline did to a capture."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
    )

    resized: bool
    compressed: bool
    original_width: int
    original_height: int
    original_size: int
    final_width: int
    final_height: int
    final_size: int
    quality: int
    transforms: list[str]


class OptimizationResult(pydantic.BaseModel):
    """Immutable output of one ``optimize`` call."""

    model_config = pydantic.ConfigDict(frozen=True)

    data: bytes
    mime_type: str = constants.OUTPUT_MIME_TYPE
    width: int
    height: int
    size: int
    quality: int
    transforms: tuple[str, ...]
    resized: bool
    compressed: bool
    original: ImageMetadata

    @property
    def base64(self) -> str:
        """Return the encoded bytes as a base64 string."""
        return base64.b64encode(self.data).decode("ascii")

    @property
    def estimated_tokens(self) -> int:
        """Estimated vision-token cost of the final image."""
        return estimate_token_cost(self.width, self.height)

    def transform_info(self) -> TransformInfo:
        """Build the boundary metadata block for this result."""
        return TransformInfo(
            resized=self.resized,
            compressed=self.compressed,
            original_width=self.original.width,
            original_height=self.original.height,
            original_size=self.original.size,
            final_width=self.width,
            final_height=self.height,
            final_size=self.size,
            quality=self.quality,
            transforms=list(self.transforms),
        )


def estimate_token_cost(width: int, height: int) -> int:
    """Estimate vision tokens for an image: ``ceil(w * h / 750)``."""
    return math.ceil((width * height) / constants.TOKEN_DIVISOR)
