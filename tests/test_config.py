"""Tests for pageshot.config — environment-driven settings."""

from __future__ import annotations

from unittest import mock

import pydantic
import pytest

from pageshot.config import BrowserSettings, ImageSettings, StorageSettings


class TestImageSettings:
    def test_defaults(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            budget = ImageSettings().to_budget()
        assert budget.max_dimension == 8000
        assert budget.optimal_dimension == 1568
        assert budget.initial_quality == 85
        assert budget.quality_floor == 60
        assert budget.time_limit_seconds is None

    def test_env_overrides(self) -> None:
        env = {
            "PAGESHOT_OPTIMAL_DIMENSION": "1024",
            "PAGESHOT_TARGET_BYTES": "500000",
            "PAGESHOT_JPEG_QUALITY": "90",
            "PAGESHOT_MIN_JPEG_QUALITY": "50",
            "PAGESHOT_QUALITY_STEP": "5",
            "PAGESHOT_OPTIMIZE_TIMEOUT": "2.5",
        }
        with mock.patch.dict("os.environ", env, clear=True):
            budget = ImageSettings().to_budget()
        assert budget.optimal_dimension == 1024
        assert budget.target_byte_size == 500000
        assert budget.initial_quality == 90
        assert budget.quality_floor == 50
        assert budget.quality_step == 5
        assert budget.time_limit_seconds == 2.5

    def test_inconsistent_env_rejected(self) -> None:
        env = {"PAGESHOT_JPEG_QUALITY": "50", "PAGESHOT_MIN_JPEG_QUALITY": "70"}
        with mock.patch.dict("os.environ", env, clear=True):
            settings = ImageSettings()
        with pytest.raises(pydantic.ValidationError):
            settings.to_budget()


class TestBrowserSettings:
    def test_defaults(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            cfg = BrowserSettings()
        assert cfg.browser == "chromium"
        assert cfg.headless is True
        assert cfg.navigation_timeout == 30000
        assert cfg.wait_timeout == 10000
        assert cfg.screenshot_timeout == 30000
        assert cfg.auto_install is True

    def test_browser_case_insensitive(self) -> None:
        with mock.patch.dict("os.environ", {"PAGESHOT_BROWSER": "Firefox"}, clear=True):
            cfg = BrowserSettings()
        assert cfg.browser == "firefox"

    def test_unknown_browser_rejected(self) -> None:
        with mock.patch.dict("os.environ", {"PAGESHOT_BROWSER": "opera"}, clear=True):
            with pytest.raises(pydantic.ValidationError):
                BrowserSettings()

    def test_headless_false(self) -> None:
        with mock.patch.dict("os.environ", {"PAGESHOT_HEADLESS": "false"}, clear=True):
            cfg = BrowserSettings()
        assert cfg.headless is False


class TestStorageSettings:
    def test_defaults(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            cfg = StorageSettings()
        assert cfg.save_by_default is False
        assert cfg.max_screenshots is None
        assert cfg.screenshot_dir is None

    def test_env(self) -> None:
        env = {
            "PAGESHOT_SAVE_SCREENSHOTS": "true",
            "PAGESHOT_MAX_SCREENSHOTS": "10",
            "PAGESHOT_SCREENSHOT_DIR": "/tmp/shots",
        }
        with mock.patch.dict("os.environ", env, clear=True):
            cfg = StorageSettings()
        assert cfg.save_by_default is True
        assert cfg.max_screenshots == 10
        assert cfg.screenshot_dir == "/tmp/shots"
