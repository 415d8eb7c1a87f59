"""
Error types for the capture and encoding pipeline, plus a helper
for consistent error message extraction.

Every pipeline error is fatal to the current invocation: nothing
retries internally and no partial result or transform log is
returned.  Callers decide whether to surface or substitute.
"""

from __future__ import annotations


class PageshotError(Exception):
    """Base class for all pageshot errors."""


class ImagePipelineError(PageshotError):
    """Base class for failures inside the image encoding pipeline."""


class DecodeError(ImagePipelineError):
    """Input bytes are not a bitmap, or report zero/negative dimensions."""


class EncodeError(ImagePipelineError):
    """The codec rejected a valid bitmap and quality combination."""


class ResourceExhausted(ImagePipelineError):
    """A host-configured pixel or time bound was exceeded mid-pipeline."""


class CaptureError(PageshotError):
    """The browser could not navigate to or screenshot a page."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.

    Falls back to the exception class name when the exception
    carries no message.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
