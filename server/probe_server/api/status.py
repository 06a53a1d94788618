"""Status endpoints: JSON payload and HTML dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from probe_server.api.common import (
    cors_headers,
    get_client_ip,
    get_config,
    get_renderer,
    get_server_stats,
    get_status_limiter,
    get_store,
    json_error,
    method_not_allowed,
    preflight,
)
from probe_server.config import AppConfig
from probe_server.core.errors import RateLimitExceeded
from probe_server.core.occupancy import estimate
from probe_server.core.rate_limiter import SlidingWindowRateLimiter
from probe_server.core.stats import ServerStats
from probe_server.core.store import ProbeStore
from probe_server.core.timeutil import to_iso, utc_now
from probe_server.render.dashboard import DashboardRenderer

router = APIRouter()

METHODS = "GET, OPTIONS"

ENDPOINTS = {
    "main_site": "/",
    "probe_endpoint": "/ (POST)",
    "status_json": "/status",
    "status_html": "/status?format=html",
    "health": "/health",
}


@router.get("/status")
@router.get("/api/status")
async def status(
    request: Request,
    output: str = Query("json", alias="format"),
    config: AppConfig = Depends(get_config),
    store: ProbeStore = Depends(get_store),
    server_stats: ServerStats = Depends(get_server_stats),
    limiter: SlidingWindowRateLimiter = Depends(get_status_limiter),
    renderer: DashboardRenderer = Depends(get_renderer),
) -> Response:
    """Latest reading, recent history, stats and the derived occupancy.

    ``?format=html`` returns the dashboard page instead of JSON.
    """
    source = get_client_ip(request)
    max_requests = config.limits.status_max_requests
    window_ms = int(config.limits.status_window_seconds * 1000)
    if not limiter.admit(source, max_requests, window_ms):
        exceeded = RateLimitExceeded(source, max_requests, window_ms)
        return json_error(
            429, "Too many requests", str(exceeded), METHODS,
            headers={
                "Retry-After": str(exceeded.retry_after_seconds),
                "X-RateLimit-Limit": str(max_requests),
            },
        )

    snapshot = await store.snapshot()

    if output == "html":
        page = renderer.render(snapshot.latest, snapshot.stats, snapshot.history)
        return HTMLResponse(page, headers=cors_headers(METHODS))

    occupancy = estimate(
        snapshot.latest,
        correction_factor=config.occupancy.correction_factor,
        max_capacity=config.occupancy.max_capacity,
    )
    counters = server_stats.snapshot()
    payload = {
        "server_info": {
            "timestamp": to_iso(utc_now()),
            "platform": config.server.platform,
            "uptime": counters.pop("uptime_seconds"),
            "counters": counters,
        },
        "probe_data": {
            "latest": snapshot.latest.to_dict() if snapshot.latest else None,
            "history": [reading.to_dict() for reading in snapshot.history],
            "stats": snapshot.stats.to_dict(),
        },
        "occupancy": occupancy.to_dict(),
        "endpoints": ENDPOINTS,
    }
    return JSONResponse(payload, headers=cors_headers(METHODS))


@router.options("/status", include_in_schema=False)
@router.options("/api/status", include_in_schema=False)
async def status_preflight() -> Response:
    return preflight(METHODS)


@router.api_route("/status", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
@router.api_route("/api/status", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def status_method_not_allowed() -> Response:
    return method_not_allowed("GET", METHODS)
