"""Tests for pageshot.app — HTTP routes."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest import mock

import pytest
from factories import make_png
from fastapi import testclient

from pageshot.app import app
from pageshot.models.browser import ConsoleCaptureResult, RawScreenshot
from pageshot.tools import screenshot
from pageshot.utils.errors import CaptureError


@pytest.fixture()
def client() -> Iterator[testclient.TestClient]:
    with mock.patch.dict("os.environ", {}, clear=True), testclient.TestClient(app) as c:
        session = mock.MagicMock()
        session.capture = mock.AsyncMock(
            return_value=RawScreenshot(png=make_png(2000, 1500), console=ConsoleCaptureResult())
        )
        session.close = mock.AsyncMock()
        c.app.state.session = session  # type: ignore[attr-defined]
        yield c


class TestViewportsRoute:
    def test_lists_presets(self, client: testclient.TestClient) -> None:
        resp = client.get("/api/viewports")
        assert resp.status_code == 200
        body = resp.json()
        names = [p["name"] for p in body["presets"]]
        assert "desktop" in names
        assert "mobile" in names
        assert "deviceScaleFactor" in body["presets"][0]
        assert "1280x720" in body["customFormat"]


class TestLimitsRoute:
    def test_reports_budget(self, client: testclient.TestClient) -> None:
        limits = client.get("/api/limits").json()["limits"]
        assert limits["maxDimension"]["value"] == 8000
        assert limits["optimalDimension"]["value"] == 1568
        assert limits["maxFileSize"]["value"] == 5 * 1024 * 1024
        assert limits["targetSize"]["value"] == 750 * 1024
        assert limits["fullPageTargetSize"]["value"] == 1536 * 1024
        assert "750" in limits["tokenFormula"]


class TestScreenshotRoute:
    def test_success(self, client: testclient.TestClient) -> None:
        resp = client.get("/api/screenshot", params={"url": "http://localhost:3000", "viewport": "tablet"})
        assert resp.status_code == 200
        image, text = resp.json()["content"]
        assert image["type"] == "image"
        assert image["mimeType"] == "image/jpeg"
        metadata = json.loads(text["text"])
        assert metadata["viewport"]["name"] == "tablet"
        assert metadata["processed"]["width"] == 1568

    def test_camel_case_query_params(self, client: testclient.TestClient) -> None:
        resp = client.get(
            "/api/screenshot",
            params={"url": "http://localhost", "fullPage": "true", "waitFor": "load", "maxDimension": "1000"},
        )
        assert resp.status_code == 200
        kwargs = client.app.state.session.capture.call_args.kwargs  # type: ignore[attr-defined]
        assert kwargs["full_page"] is True
        assert kwargs["wait_for"] == "load"

    def test_missing_url(self, client: testclient.TestClient) -> None:
        assert client.get("/api/screenshot").status_code == 422

    def test_invalid_override(self, client: testclient.TestClient) -> None:
        resp = client.get("/api/screenshot", params={"url": "http://localhost", "quality": "30"})
        assert resp.status_code == 422
        assert resp.json()["isError"] is True

    def test_capture_failure(self, client: testclient.TestClient) -> None:
        client.app.state.session.capture.side_effect = CaptureError("net::ERR_CONNECTION_REFUSED")  # type: ignore[attr-defined]
        resp = client.get("/api/screenshot", params={"url": "http://localhost:1"})
        assert resp.status_code == 500
        body = resp.json()
        assert body["isError"] is True
        payload = json.loads(body["content"][0]["text"])
        assert payload["message"] == "Screenshot capture failed: net::ERR_CONNECTION_REFUSED"
        assert payload["url"] == "http://localhost:1"


class TestOpenApi:
    def test_screenshot_route_documents_tool(self, client: testclient.TestClient) -> None:
        operation = client.get("/openapi.json").json()["paths"]["/api/screenshot"]["get"]
        assert operation["description"] == screenshot.TOOL_DESCRIPTION
        assert operation["operationId"].startswith(screenshot.TOOL_NAME)
