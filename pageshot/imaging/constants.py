"""
LLM image constraints and encoding defaults.

Based on the documented limits of vision-capable LLMs:

- Max dimension 8000 px is a hard limit; larger images break
  the session outright.
- 1568 px on the long side gives the best quality/token ratio.
- Tool responses are capped near 1 MB and base64 adds ~33 %,
  so the normal byte target is 750 KiB.
- Full-page captures get a relaxed 1.5 MiB target so long pages
  stay legible.
"""

from __future__ import annotations

# ── LLM limits ──────────────────────────────────────────────
MAX_DIMENSION = 8000
OPTIMAL_DIMENSION = 1568
MIN_READABLE_WIDTH = 800
MAX_FILE_SIZE = 5 * 1024 * 1024
TARGET_BYTE_SIZE = 750 * 1024
FULL_PAGE_TARGET_BYTE_SIZE = 1536 * 1024

# Tall pages are capped this far below the hard ceiling.
FULL_PAGE_HEADROOM = 500

# Height-to-width ratio above which a full-page capture is "tall".
TALL_PAGE_RATIO = 3

# Token cost formula: ceil(width * height / 750)
TOKEN_DIVISOR = 750

# ── JPEG encoding ──────────────────────────────────────────
JPEG_QUALITY = 85
MIN_JPEG_QUALITY = 60
QUALITY_STEP = 10

OUTPUT_FORMAT = "JPEG"
OUTPUT_MIME_TYPE = "image/jpeg"
