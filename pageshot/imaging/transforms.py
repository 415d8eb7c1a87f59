"""
Transform log: an ordered, immutable audit trail of what the
encoding pipeline did.

Entries are a closed set of variants and are only rendered to
their string tags at the boundary, in ``TransformLog.render``.
"""

from __future__ import annotations

import dataclasses

from pageshot.models.image import ResizePolicy

_RESIZE_TAG_PREFIX: dict[ResizePolicy, str] = {
    "tall_page": "fullpage_resize",
    "hard_limit": "resized_from",
    "optimal": "resized_to_optimal",
}


@dataclasses.dataclass(frozen=True)
class InitialResize:
    """Pre-encode resize chosen by the strategy selector."""

    policy: ResizePolicy
    from_size: tuple[int, int]
    to_size: tuple[int, int]

    def render(self) -> str:
        prefix = _RESIZE_TAG_PREFIX[self.policy]
        (fw, fh), (tw, th) = self.from_size, self.to_size
        return f"{prefix}_{fw}x{fh}_to_{tw}x{th}"


@dataclasses.dataclass(frozen=True)
class QualitySet:
    """JPEG quality currently applied."""

    value: int

    def render(self) -> str:
        return f"jpeg_quality_{self.value}"


@dataclasses.dataclass(frozen=True)
class ForcedResize:
    """Last-resort shrink applied after the quality floor was hit."""

    to_size: tuple[int, int]

    def render(self) -> str:
        w, h = self.to_size
        return f"forced_resize_to_{w}x{h}"


Transform = InitialResize | QualitySet | ForcedResize


@dataclasses.dataclass(frozen=True)
class TransformLog:
    """Ordered transforms in causal order.

    Holds at most one ``QualitySet``; setting a new quality replaces
    the existing entry in place instead of appending.
    """

    entries: tuple[Transform, ...] = ()

    def append(self, transform: Transform) -> TransformLog:
        """Return a new log with *transform* appended (or quality replaced)."""
        if isinstance(transform, QualitySet):
            return self.with_quality(transform.value)
        return TransformLog(self.entries + (transform,))

    def with_quality(self, quality: int) -> TransformLog:
        """Return a new log whose single quality entry is *quality*."""
        tag = QualitySet(quality)
        for i, entry in enumerate(self.entries):
            if isinstance(entry, QualitySet):
                return TransformLog(self.entries[:i] + (tag,) + self.entries[i + 1:])
        return TransformLog(self.entries + (tag,))

    @property
    def quality(self) -> int | None:
        """The logged quality value, if any."""
        for entry in self.entries:
            if isinstance(entry, QualitySet):
                return entry.value
        return None

    def render(self) -> tuple[str, ...]:
        """Render every entry to its string tag."""
        return tuple(entry.render() for entry in self.entries)
