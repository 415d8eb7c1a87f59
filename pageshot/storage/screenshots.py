"""
Local persistence for optimised screenshots.

Some clients cannot render embedded images, so captures can also
be written to ``.pageshot/screenshots`` and referenced by path.
The base directory is resolved once per store:

1. ``PAGESHOT_SCREENSHOT_DIR`` when set,
2. otherwise the project root (nearest ``pyproject.toml`` or ``.git``),
3. otherwise the home directory.
"""

from __future__ import annotations

import pathlib
import re
from datetime import datetime
from urllib import parse

import pydantic

from pageshot.config import StorageSettings
from pageshot.utils import logger
from pageshot.utils.serialization import snake_to_camel

log = logger.create_logger("ScreenshotStore")

SCREENSHOT_SUBDIR = pathlib.Path(".pageshot") / "screenshots"
GITIGNORE_ENTRY = ".pageshot/"
_IGNORE_PATTERNS = {GITIGNORE_ENTRY, ".pageshot", ".pageshot/*"}
_PROJECT_MARKERS = ("pyproject.toml", ".git")
_MAX_SLUG_LENGTH = 50


class SaveResult(pydantic.BaseModel):
    """Where a screenshot was written."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
    )

    absolute_path: str
    relative_path: str
    filename: str


def find_upwards(start: pathlib.Path, markers: tuple[str, ...]) -> pathlib.Path | None:
    """Return the nearest ancestor of *start* (inclusive) holding any of *markers*."""
    for directory in (start, *start.parents):
        if any((directory / marker).exists() for marker in markers):
            return directory
    return None


def generate_filename(url: str, now: datetime | None = None) -> str:
    """Build ``{host-path-slug}-{YYYYMMDD-HHMMSS}.jpg`` for *url*."""
    parsed = parse.urlparse(url)
    slug = ""
    if parsed.netloc:
        slug = re.sub(r"[^a-zA-Z0-9]", "-", f"{parsed.netloc}{parsed.path}")
        slug = re.sub(r"-+", "-", slug).strip("-").lower()[:_MAX_SLUG_LENGTH]
    slug = slug or "screenshot"

    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{slug}-{timestamp}.jpg"


class ScreenshotStore:
    """Writes screenshots to disk and keeps the directory tidy."""

    def __init__(
        self,
        settings: StorageSettings | None = None,
        *,
        cwd: pathlib.Path | None = None,
    ) -> None:
        self._settings = settings or StorageSettings()
        self._cwd = cwd or pathlib.Path.cwd()
        self._base_dir: pathlib.Path | None = None

    @property
    def save_by_default(self) -> bool:
        return self._settings.save_by_default

    @property
    def base_dir(self) -> pathlib.Path:
        """Resolved screenshot directory (not necessarily created yet)."""
        if self._base_dir is None:
            self._base_dir = self._resolve_base_dir()
        return self._base_dir

    def _resolve_base_dir(self) -> pathlib.Path:
        if self._settings.screenshot_dir:
            path = pathlib.Path(self._settings.screenshot_dir).expanduser()
            log.info("Screenshot dir (custom)", {"path": str(path)})
            return path

        root = find_upwards(self._cwd, _PROJECT_MARKERS)
        if root is not None:
            path = root / SCREENSHOT_SUBDIR
            log.info("Screenshot dir (project)", {"path": str(path)})
            return path

        path = pathlib.Path.home() / SCREENSHOT_SUBDIR
        log.info("Screenshot dir (home fallback)", {"path": str(path)})
        return path

    # ==========================================================================
    # Directory setup
    # ==========================================================================

    def ensure_dir(self) -> pathlib.Path:
        """Create the screenshot directory, falling back to home on EACCES/EPERM."""
        directory = self.base_dir
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            fallback = pathlib.Path.home() / SCREENSHOT_SUBDIR
            log.warn("Permission denied, falling back to home", {
                "path": str(directory),
                "fallback": str(fallback),
            })
            fallback.mkdir(parents=True, exist_ok=True)
            self._base_dir = fallback
            return fallback
        return directory

    def ensure_gitignore(self) -> bool:
        """Add ``.pageshot/`` to the enclosing git repository's ``.gitignore``.

        Returns:
            True if the file was created or modified.
        """
        # base_dir is <root>/.pageshot/screenshots
        git_root = find_upwards(self.base_dir.parent.parent, (".git",))
        if git_root is None:
            return False

        gitignore = git_root / ".gitignore"
        if gitignore.exists():
            content = gitignore.read_text(encoding="utf-8")
            lines = {line.strip() for line in content.splitlines()}
            if lines & _IGNORE_PATTERNS:
                return False
            prefix = "" if content.endswith("\n") or not content else "\n"
            with gitignore.open("a", encoding="utf-8") as fh:
                fh.write(f"{prefix}{GITIGNORE_ENTRY}\n")
            log.info("Added screenshot dir to .gitignore", {"path": str(gitignore)})
        else:
            gitignore.write_text(f"# pageshot screenshots\n{GITIGNORE_ENTRY}\n", encoding="utf-8")
            log.info("Created .gitignore", {"path": str(gitignore)})
        return True

    # ==========================================================================
    # Save / cleanup
    # ==========================================================================

    def save(self, data: bytes, url: str) -> SaveResult:
        """Write *data* for *url* and prune old files if a limit is set.

        Raises:
            OSError: The file could not be written.
        """
        directory = self.ensure_dir()
        self.ensure_gitignore()

        filename = generate_filename(url)
        path = directory / filename
        try:
            path.write_bytes(data)
        except OSError as exc:
            log.error("Failed to save screenshot", {"path": str(path), "error": str(exc)})
            raise OSError(f"Failed to save screenshot: {exc}. Path: {path}") from exc
        log.success("Screenshot saved", {"path": str(path), "bytes": len(data)})

        if self._settings.max_screenshots is not None:
            self.cleanup(self._settings.max_screenshots)

        return SaveResult(
            absolute_path=str(path.resolve()),
            relative_path=str(SCREENSHOT_SUBDIR / filename),
            filename=filename,
        )

    def cleanup(self, max_files: int) -> int:
        """Delete the oldest ``.jpg`` files beyond *max_files*.

        Returns the number of files removed.
        """
        directory = self.base_dir
        if not directory.exists():
            return 0

        files = sorted(directory.glob("*.jpg"), key=lambda p: p.stat().st_mtime)
        excess = files[: max(len(files) - max_files, 0)]
        removed = 0
        for path in excess:
            try:
                path.unlink()
                removed += 1
            except OSError as exc:
                log.warn("Failed to delete old screenshot", {"path": path.name, "error": str(exc)})
        if removed:
            log.info("Old screenshots removed", {"count": removed})
        return removed
