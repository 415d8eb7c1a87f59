"""
Pillow-backed resize and JPEG encode primitives.

Encoding is deterministic at a fixed quality: the same pixels and
quality always yield the same bytes, which the convergence loop
relies on when comparing sizes.
"""

from __future__ import annotations

import io

from PIL import Image

from pageshot.imaging import constants
from pageshot.utils.errors import DecodeError, EncodeError

_ALPHA_MODES = ("RGBA", "LA", "PA")


def to_rgb(img: Image.Image) -> Image.Image:
    """Return *img* in RGB mode, flattening transparency onto white.

    Raises:
        DecodeError: The pixel data could not be loaded.
    """
    try:
        if img.mode == "P" and "transparency" in img.info:
            img = img.convert("RGBA")
        if img.mode in _ALPHA_MODES:
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        if img.mode != "RGB":
            return img.convert("RGB")
        img.load()
    except (OSError, ValueError) as exc:
        raise DecodeError(f"Failed to decode pixel data: {exc}") from exc
    return img


def resize(img: Image.Image, width: int, height: int) -> Image.Image:
    """Resample *img* to exactly ``width x height`` with Lanczos filtering.

    Aspect ratio is not enforced; callers pass the dimensions they
    computed for their policy.
    """
    if img.size == (width, height):
        return img
    return img.resize((width, height), Image.Resampling.LANCZOS)


def encode_jpeg(img: Image.Image, quality: int) -> bytes:
    """Encode *img* as an optimised baseline JPEG at *quality*.

    Raises:
        EncodeError: Pillow rejected the image or quality value.
    """
    buf = io.BytesIO()
    try:
        img.save(buf, format=constants.OUTPUT_FORMAT, quality=quality, optimize=True)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"JPEG encode failed at quality {quality}: {exc}") from exc
    return buf.getvalue()
