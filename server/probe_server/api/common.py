"""Shared helpers for the HTTP adapters: component lookup, CORS, client IP."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from probe_server.config import AppConfig
from probe_server.core.processor import IngestPipeline
from probe_server.core.rate_limiter import UNKNOWN_SOURCE, SlidingWindowRateLimiter
from probe_server.core.stats import ServerStats
from probe_server.core.store import ProbeStore
from probe_server.render.dashboard import DashboardRenderer


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_pipeline(request: Request) -> IngestPipeline:
    return request.app.state.pipeline


def get_store(request: Request) -> ProbeStore:
    return request.app.state.store


def get_server_stats(request: Request) -> ServerStats:
    return request.app.state.server_stats


def get_status_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.status_limiter


def get_renderer(request: Request) -> DashboardRenderer:
    return request.app.state.renderer


def cors_headers(methods: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": "Content-Type",
    }


def preflight(methods: str) -> Response:
    return Response(status_code=200, headers=cors_headers(methods))


def json_error(status_code: int, error: str, message: str, methods: str,
               headers: dict[str, str] | None = None) -> JSONResponse:
    all_headers = cors_headers(methods)
    if headers:
        all_headers.update(headers)
    return JSONResponse(
        {"error": error, "message": message},
        status_code=status_code,
        headers=all_headers,
    )


def method_not_allowed(allowed: str, methods: str) -> JSONResponse:
    return json_error(405, "Method not allowed",
                      f"Only {allowed} requests are accepted", methods)


def get_client_ip(request: Request) -> str:
    """Best-effort caller address, honoring reverse proxies."""
    # X-Forwarded-For may hold "client, proxy1, proxy2"; the first is the client.
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_SOURCE
