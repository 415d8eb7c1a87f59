"""
Viewport presets for common device sizes.
Used to emulate phones, tablets and desktops when capturing.
"""

from __future__ import annotations

import re

from pageshot.models.browser import ViewportConfig, ViewportPreset
from pageshot.utils import logger

log = logger.create_logger("Viewports")

DEFAULT_VIEWPORT = "desktop"

# Widths below this are treated as mobile for custom sizes.
_MOBILE_BREAKPOINT = 768

_CUSTOM_RE = re.compile(r"^(\d+)x(\d+)(?:@(\d+)x)?$", re.IGNORECASE)

VIEWPORT_PRESETS: dict[str, ViewportPreset] = {
    "mobile": ViewportPreset(
        name="mobile",
        description="iPhone SE / Standard mobile",
        width=375,
        height=667,
        device_scale_factor=2,
        is_mobile=True,
        has_touch=True,
    ),
    "mobile-lg": ViewportPreset(
        name="mobile-lg",
        description="iPhone 14 Pro Max / Large mobile",
        width=428,
        height=926,
        device_scale_factor=3,
        is_mobile=True,
        has_touch=True,
    ),
    "tablet": ViewportPreset(
        name="tablet",
        description="iPad / Standard tablet",
        width=768,
        height=1024,
        device_scale_factor=2,
        is_mobile=True,
        has_touch=True,
    ),
    "tablet-landscape": ViewportPreset(
        name="tablet-landscape",
        description="iPad Landscape",
        width=1024,
        height=768,
        device_scale_factor=2,
        is_mobile=True,
        has_touch=True,
    ),
    "desktop": ViewportPreset(
        name="desktop",
        description="Standard laptop (1440x900)",
        width=1440,
        height=900,
        device_scale_factor=1,
        is_mobile=False,
        has_touch=False,
    ),
    "desktop-lg": ViewportPreset(
        name="desktop-lg",
        description="Full HD monitor (1920x1080)",
        width=1920,
        height=1080,
        device_scale_factor=1,
        is_mobile=False,
        has_touch=False,
    ),
    "desktop-hd": ViewportPreset(
        name="desktop-hd",
        description="2K monitor (2560x1440)",
        width=2560,
        height=1440,
        device_scale_factor=1,
        is_mobile=False,
        has_touch=False,
    ),
}


def parse_viewport(viewport: str) -> ViewportConfig:
    """Resolve a preset name or ``WxH`` / ``WxH@Nx`` string.

    Unknown values fall back to the default preset with a warning.
    """
    preset = VIEWPORT_PRESETS.get(viewport.lower())
    if preset is not None:
        return preset

    match = _CUSTOM_RE.match(viewport.strip())
    if match and int(match.group(1)) > 0 and int(match.group(2)) > 0:
        width = int(match.group(1))
        height = int(match.group(2))
        scale = int(match.group(3)) if match.group(3) else 1
        is_mobile = width < _MOBILE_BREAKPOINT
        return ViewportConfig(
            width=width,
            height=height,
            device_scale_factor=scale or 1,
            is_mobile=is_mobile,
            has_touch=is_mobile,
        )

    log.warn("Unknown viewport, using default", {"viewport": viewport, "default": DEFAULT_VIEWPORT})
    return VIEWPORT_PRESETS[DEFAULT_VIEWPORT]


def get_available_viewports() -> list[str]:
    """Return the names of all presets."""
    return list(VIEWPORT_PRESETS)


def get_viewport_preset(name: str) -> ViewportPreset | None:
    """Return the preset called *name* (case-insensitive), if any."""
    return VIEWPORT_PRESETS.get(name.lower())
