"""Side-effect-free inspection of a raw bitmap's dimensions and codec."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from pageshot.models.image import ImageMetadata
from pageshot.utils.errors import DecodeError, ResourceExhausted

# IJG standard luminance quantization table (Annex K of the JPEG spec).
_STD_LUMINANCE_TABLE = (
    16, 11, 10, 16, 24, 40, 51, 61,
    12, 12, 14, 19, 26, 58, 60, 55,
    14, 13, 16, 24, 40, 57, 69, 56,
    14, 17, 22, 29, 51, 87, 80, 62,
    18, 22, 37, 56, 68, 109, 103, 77,
    24, 35, 55, 64, 81, 104, 113, 92,
    49, 64, 78, 87, 103, 121, 120, 101,
    72, 92, 95, 98, 112, 100, 103, 99,
)


def _scaled_table_sum(quality: int) -> int:
    """Sum of the luminance table libjpeg writes at *quality* (baseline)."""
    scale = 5000 // quality if quality < 50 else 200 - quality * 2
    return sum(min(max((q * scale + 50) // 100, 1), 255) for q in _STD_LUMINANCE_TABLE)


def open_image(data: bytes, *, max_pixels: int | None = None) -> Image.Image:
    """Open *data* with Pillow and validate its geometry.

    The image is loaded lazily; only the header is parsed here.

    Args:
        data: Raw encoded bitmap bytes (PNG, JPEG, ...).
        max_pixels: Optional pixel-count bound imposed by the host.

    Raises:
        DecodeError: The bytes are not a recognised bitmap or it
            reports zero/negative dimensions.
        ResourceExhausted: The bitmap exceeds Pillow's
            decompression-bomb guard or *max_pixels*.
    """
    if not data:
        raise DecodeError("Empty image buffer")

    try:
        img = Image.open(io.BytesIO(data))
    except Image.DecompressionBombError as exc:
        raise ResourceExhausted(f"Image exceeds pixel limit: {exc}") from exc
    except (UnidentifiedImageError, OSError, ValueError, EOFError) as exc:
        raise DecodeError(f"Unrecognised image data: {exc}") from exc

    width, height = img.size
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image reports invalid dimensions {width}x{height}")
    if max_pixels is not None and width * height > max_pixels:
        raise ResourceExhausted(
            f"Image has {width * height} pixels, limit is {max_pixels}"
        )
    return img


def extract_metadata(data: bytes) -> ImageMetadata:
    """Return width, height, byte size and format of *data*."""
    img = open_image(data)
    return ImageMetadata(
        width=img.width,
        height=img.height,
        size=len(data),
        format=(img.format or "unknown").lower(),
    )


def estimate_jpeg_quality(img: Image.Image) -> int | None:
    """Estimate the quality setting a JPEG was written with.

    Compares the luminance quantization table against the standard
    table scaled for each quality.  Exact for files written by
    libjpeg-based encoders (Pillow included); approximate otherwise.

    Returns:
        The closest quality in 1-100, or ``None`` when *img* carries
        no quantization tables (not a JPEG).
    """
    tables = getattr(img, "quantization", None)
    if not tables or 0 not in tables:
        return None
    actual = sum(tables[0])
    return min(range(1, 101), key=lambda q: (abs(_scaled_table_sum(q) - actual), q))
