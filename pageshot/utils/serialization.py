"""Shared serialization helpers for camelCase conversion.

Provides a single ``snake_to_camel`` implementation used as the
alias generator of every model that crosses the HTTP boundary.
"""

from __future__ import annotations


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"original_width"``.

    Returns:
        The camelCase equivalent, e.g. ``"originalWidth"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])
