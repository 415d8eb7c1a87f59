"""
Server entry point — FastAPI app setup and route configuration.
Sets up the FastAPI server with CORS, the screenshot route, and the
viewport / limits documentation routes.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import AsyncGenerator
from typing import Annotated
from urllib import parse

import dotenv
import fastapi
import pydantic
import uvicorn
from fastapi.middleware import cors
from starlette import responses

from pageshot import config
from pageshot.browser import viewports
from pageshot.browser.session import BrowserSession
from pageshot.imaging import constants
from pageshot.storage.screenshots import ScreenshotStore
from pageshot.tools import screenshot
from pageshot.utils import logger
from pageshot.utils.errors import PageshotError, get_error_message

dotenv.load_dotenv()

log = logger.create_logger("Server")

HOST = os.environ.get("UVICORN_HOST", "127.0.0.1")
PORT = int(os.environ.get("UVICORN_PORT", "3001"))


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncGenerator[None]:
    """Own one browser session and one screenshot store for the app's lifetime."""
    browser_settings = config.BrowserSettings()
    app.state.budget = config.ImageSettings().to_budget()
    app.state.store = ScreenshotStore(config.StorageSettings())
    app.state.session = BrowserSession(browser_settings)

    log.section(f"{config.SERVER_NAME} v{config.SERVER_VERSION} started")
    log.info("Browser", {"browser": browser_settings.browser})
    log.info("Available viewports", {"viewports": ", ".join(viewports.get_available_viewports())})
    try:
        yield
    finally:
        await app.state.session.close()
        log.info("Browser session closed")


app = fastapi.FastAPI(
    title=config.SERVER_NAME,
    version=config.SERVER_VERSION,
    description=config.SERVER_DESCRIPTION,
    lifespan=lifespan,
)

# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    cors.CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# API Routes
# ============================================================================


@app.get("/api/screenshot", name=screenshot.TOOL_NAME, description=screenshot.TOOL_DESCRIPTION)
async def screenshot_endpoint(
    request: fastapi.Request,
    params: Annotated[screenshot.ScreenshotRequest, fastapi.Query()],
) -> responses.JSONResponse:
    """
    Capture a URL and return the optimised image plus metadata.
    """
    log.info("Incoming screenshot request", {"url": params.url, "viewport": params.viewport})
    logger.start_log_file(parse.urlparse(params.url).hostname or "capture")
    try:
        output = await screenshot.execute_screenshot(
            request.app.state.session,
            params,
            budget=request.app.state.budget,
            store=request.app.state.store,
        )
    except pydantic.ValidationError as error:
        log.warn("Invalid optimisation overrides", {"error": str(error)})
        return responses.JSONResponse(
            screenshot.format_error_response(params, get_error_message(error)),
            status_code=422,
        )
    except (PageshotError, OSError) as error:
        log.error("Screenshot failed", {"url": params.url, "error": get_error_message(error)})
        return responses.JSONResponse(
            screenshot.format_error_response(params, get_error_message(error)),
            status_code=500,
        )
    finally:
        logger.end_log_file()
    return responses.JSONResponse(screenshot.format_screenshot_response(output))


@app.get("/api/viewports")
async def viewports_endpoint() -> dict[str, object]:
    """Available viewport presets for the screenshot tool."""
    return {
        "description": "Available viewport presets for the screenshot tool",
        "presets": [
            preset.model_dump(by_alias=True, exclude_none=True)
            for preset in viewports.VIEWPORT_PRESETS.values()
        ],
        "customFormat": 'You can also use custom dimensions like "1280x720" or "1280x720@2x" for retina',
    }


@app.get("/api/limits")
async def limits_endpoint(request: fastapi.Request) -> dict[str, object]:
    """Image constraints the optimiser enforces."""
    budget = request.app.state.budget
    return {
        "description": "Screenshots are automatically optimised to stay within these limits",
        "limits": {
            "maxDimension": {
                "value": budget.max_dimension,
                "unit": "pixels",
                "description": "Maximum dimension on any side (hard limit)",
            },
            "optimalDimension": {
                "value": budget.optimal_dimension,
                "unit": "pixels",
                "description": "Optimal dimension for best quality/token ratio",
            },
            "maxFileSize": {
                "value": constants.MAX_FILE_SIZE,
                "unit": "bytes",
                "description": "Maximum file size (5MB)",
            },
            "targetSize": {
                "value": budget.target_byte_size,
                "unit": "bytes",
                "description": "Target size accounting for base64 overhead",
            },
            "fullPageTargetSize": {
                "value": budget.full_page_target_byte_size,
                "unit": "bytes",
                "description": "Relaxed target for full-page captures",
            },
            "tokenFormula": f"(width x height) / {constants.TOKEN_DIVISOR}",
        },
    }


# ============================================================================
# Start Server
# ============================================================================

def main() -> None:
    """Entry point for running the server."""
    log.success(f"Server listening on {HOST}:{PORT}")
    uvicorn.run("pageshot.app:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
