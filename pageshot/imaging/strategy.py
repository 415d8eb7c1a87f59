"""
Resize policy selection and target-dimension arithmetic.

Everything here is pure integer/float math with no image access,
so the policy table can be exercised without encoding anything.
"""

from __future__ import annotations

import math

from pageshot.imaging import constants
from pageshot.models.image import OptimizationBudget, ResizePolicy


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


def is_tall_page(width: int, height: int) -> bool:
    """Return True when *height* exceeds ``TALL_PAGE_RATIO`` times *width*."""
    return height > width * constants.TALL_PAGE_RATIO


def select_policy(
    width: int,
    height: int,
    full_page: bool,
    budget: OptimizationBudget,
) -> ResizePolicy:
    """Choose how a raw capture is resized before encoding.

    The tall-page rule is checked before the hard ceiling so a very
    long full-page capture is never squashed by a generic cap.
    Captures over the hard ceiling jump straight to the optimal
    dimension, which avoids a second resize pass later.
    """
    longest = max(width, height)
    if full_page and is_tall_page(width, height):
        return "tall_page"
    if longest > budget.max_dimension:
        return "hard_limit"
    if longest > budget.optimal_dimension and not full_page:
        return "optimal"
    return "none"


def calculate_resize_dimensions(
    width: int,
    height: int,
    max_dimension: int,
) -> tuple[int, int]:
    """Scale both sides by the same factor so the long side fits *max_dimension*.

    Each side is rounded independently, so the aspect ratio may
    drift by at most one pixel.
    """
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height

    ratio = max_dimension / longest
    return (
        max(1, round_half_up(width * ratio)),
        max(1, round_half_up(height * ratio)),
    )


def calculate_full_page_dimensions(
    width: int,
    height: int,
    min_width: int,
    max_height: int,
) -> tuple[int, int]:
    """Target size for a tall full-page capture.

    Keeps the width at or above *min_width* so text stays legible
    and caps the height at *max_height*.  The aspect ratio may be
    distorted, and narrow pages are upscaled to *min_width*.
    """
    if height > max_height:
        scaled_width = round_half_up(max_height * width / height)
        if scaled_width < min_width:
            new_height = round_half_up(min_width * height / width)
            return min_width, min(new_height, max_height)
        return scaled_width, max_height

    if width < min_width:
        new_height = round_half_up(min_width * height / width)
        return min_width, min(new_height, max_height)

    return width, height


def target_dimensions(
    policy: ResizePolicy,
    width: int,
    height: int,
    budget: OptimizationBudget,
) -> tuple[int, int]:
    """Return the pre-encode dimensions the chosen *policy* asks for."""
    if policy == "tall_page":
        return calculate_full_page_dimensions(
            width,
            height,
            budget.min_readable_width,
            budget.tall_page_max_height,
        )
    if policy in ("hard_limit", "optimal"):
        return calculate_resize_dimensions(width, height, budget.optimal_dimension)
    return width, height


def forced_shrink_dimensions(
    width: int,
    height: int,
    current_size: int,
    target_size: int,
    *,
    min_width: int | None,
    max_dimension: int,
) -> tuple[int, int]:
    """Last-resort isotropic shrink toward a byte budget.

    Encoded size scales roughly with pixel area, so the linear
    ratio is ``sqrt(target / current)``.  When *min_width* is set
    (tall pages) the width never drops below it and the height is
    recomputed proportionally from the current geometry.
    """
    ratio = math.sqrt(target_size / current_size)
    new_width = max(1, round_half_up(width * ratio))
    new_height = max(1, round_half_up(height * ratio))

    if min_width is not None and new_width < min_width:
        new_width = min_width
        new_height = round_half_up(height * (new_width / width))

    return new_width, min(new_height, max_dimension)


def exceeds_limits(width: int, height: int, size: int, budget: OptimizationBudget) -> bool:
    """Return True if a capture breaks the hard ceiling or normal byte target."""
    return max(width, height) > budget.max_dimension or size > budget.target_byte_size
