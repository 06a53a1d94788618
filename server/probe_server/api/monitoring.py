"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from probe_server.api.common import (
    cors_headers,
    get_config,
    get_server_stats,
    get_store,
    method_not_allowed,
    preflight,
)
from probe_server.config import AppConfig
from probe_server.core.stats import ServerStats
from probe_server.core.store import ProbeStore
from probe_server.core.timeutil import to_iso, utc_now

router = APIRouter()

METHODS = "GET, OPTIONS"


@router.get("/health")
@router.get("/api/health")
async def health(
    config: AppConfig = Depends(get_config),
    store: ProbeStore = Depends(get_store),
    server_stats: ServerStats = Depends(get_server_stats),
) -> Response:
    """Basic health check. Storage trouble is reported, not fatal."""
    storage_ok = await store.is_available()
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": to_iso(utc_now()),
            "uptime": server_stats.uptime_seconds,
            "platform": config.server.platform,
            "storage": "ok" if storage_ok else "unavailable",
        },
        headers=cors_headers(METHODS),
    )


@router.options("/health", include_in_schema=False)
@router.options("/api/health", include_in_schema=False)
async def health_preflight() -> Response:
    return preflight(METHODS)


@router.api_route("/health", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
@router.api_route("/api/health", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def health_method_not_allowed() -> Response:
    return method_not_allowed("GET", METHODS)
