"""Webhook server receiving plugin events from the host."""

import json
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from start_stop.config.settings import PluginInputs, decode_inputs, decode_settings, format_validation_errors
from start_stop.exceptions import ConfigurationError
from start_stop.manifest import MANIFEST
from start_stop.plugin import run_plugin
from start_stop.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup."""
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    log.info("webhook_server_started")
    yield


app = FastAPI(title="Start/Stop Plugin Webhook Server", lifespan=lifespan)


def _bad_request(message: str, errors: list[dict[str, str]] | None = None) -> JSONResponse:
    content: dict = {"message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=400, content=content)


def _method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"message": "Only POST requests are supported."},
        headers={"Allow": "POST"},
    )


async def _read_json(request: Request) -> dict:
    """Return the JSON object body.

    Raises:
        ConfigurationError: If the body is not a JSON object
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError("Bad Request: body is not valid JSON.") from e
    if not isinstance(body, dict):
        raise ConfigurationError("Bad Request: body must be a JSON object.")
    return body


@app.get("/manifest.json")
async def get_manifest() -> dict:
    """Describe the plugin to the host."""
    return MANIFEST


@app.post("/manifest.json")
async def validate_settings(request: Request) -> JSONResponse:
    """Validate plugin settings without running anything."""
    try:
        body = await _read_json(request)
        decode_settings(body.get("settings"))
    except ConfigurationError as e:
        log.info("settings_invalid", errors=e.errors)
        return _bad_request(e.message, e.errors)
    return JSONResponse(content={"message": "Schema is valid"})


@app.post("/")
async def handle_event(request: Request) -> JSONResponse:
    """Handle one event sent by the host."""
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != JSON_CONTENT_TYPE:
        return _bad_request(f"Error: {content_type} is not a valid content type")

    try:
        body = await _read_json(request)
        try:
            inputs = PluginInputs.model_validate(body)
        except ValidationError as e:
            raise ConfigurationError(
                "Bad Request: invalid configuration.", errors=format_validation_errors(e)
            ) from e
        settings, env = decode_inputs(inputs.settings, inputs.env)
    except ConfigurationError as e:
        log.warning("webhook_rejected", error=e.message, errors=e.errors)
        return _bad_request(e.message, e.errors)

    log.info("webhook_received", event_name=inputs.event_name)
    try:
        await run_plugin(inputs, settings, env)
    except Exception as e:
        log.error("webhook_processing_failed", error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": {"type": type(e).__name__, "message": getattr(e, "message", str(e))}},
        )

    return JSONResponse(content={"message": "OK"})


@app.exception_handler(StarletteHTTPException)
async def reject_unrouted(request: Request, exc: StarletteHTTPException) -> Response:
    """Answer every unrouted non-POST request with the 405 used for ``/``."""
    if request.method != "POST" and exc.status_code in (404, 405):
        return _method_not_allowed()
    return await http_exception_handler(request, exc)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "start-stop"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)  # nosec B104 # Development server binding
