"""Sensor ingest endpoints.

Thin FastAPI adapter: reads the body and caller address, hands both to the
ingest pipeline and maps the result to the response contract the sensor
firmware expects.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse, Response

from probe_server.api.common import (
    cors_headers,
    get_client_ip,
    get_pipeline,
    json_error,
    method_not_allowed,
    preflight,
)
from probe_server.core.errors import RateLimitExceeded
from probe_server.core.models import Accepted
from probe_server.core.processor import IngestPipeline

router = APIRouter()

METHODS = "POST, OPTIONS"
_INDEX_PATH = Path(__file__).parent.parent / "static" / "index.html"


@router.get("/", include_in_schema=False)
async def landing_page() -> FileResponse:
    return FileResponse(_INDEX_PATH, media_type="text/html")


@router.post("/")
@router.post("/api/probe")
async def receive_reading(
    request: Request,
    pipeline: IngestPipeline = Depends(get_pipeline),
) -> Response:
    """Receive one reading from the sensor.

    Accepts SSID counts either as top-level keys next to ``device_id`` and
    ``timestamp`` or nested under ``data``.
    """
    source = get_client_ip(request)
    body = await request.body()
    result = await pipeline.ingest(body, source)

    if isinstance(result, Accepted):
        return JSONResponse(
            {
                "status": "success",
                "message": "Data received successfully",
                "server_timestamp": result.server_timestamp,
            },
            headers=cors_headers(METHODS),
        )

    if result.kind == "too_many_requests":
        exceeded = RateLimitExceeded(source, pipeline.max_requests, pipeline.window_ms)
        return json_error(
            429, "Too many requests", result.message, METHODS,
            headers={
                "Retry-After": str(exceeded.retry_after_seconds),
                "X-RateLimit-Limit": str(pipeline.max_requests),
            },
        )

    return json_error(400, "Invalid data format", result.message, METHODS)


@router.options("/", include_in_schema=False)
@router.options("/api/probe", include_in_schema=False)
async def probe_preflight() -> Response:
    return preflight(METHODS)


@router.api_route("/", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
@router.api_route("/api/probe", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def probe_method_not_allowed() -> Response:
    return method_not_allowed("POST", METHODS)
