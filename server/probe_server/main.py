"""Probe server: main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, rendering and API layers. Every
component lives on ``app.state`` of the application that built it, so each
``create_app`` call yields an isolated server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from probe_server.api.monitoring import router as monitoring_router
from probe_server.api.probe import router as probe_router
from probe_server.api.status import router as status_router
from probe_server.config import AppConfig, load_config
from probe_server.core.processor import IngestPipeline
from probe_server.core.rate_limiter import SlidingWindowRateLimiter
from probe_server.core.stats import ServerStats
from probe_server.core.store import ProbeStore
from probe_server.render.dashboard import DashboardRenderer
from probe_server.storage.base import ProbeBackend
from probe_server.storage.memory_storage import MemoryProbeBackend
from probe_server.storage.redis_storage import RedisProbeBackend

log = structlog.get_logger()

VERSION = "0.1.0"
AVAILABLE_ENDPOINTS = ["/", "/status", "/health"]


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def _build_backend(config: AppConfig) -> ProbeBackend:
    backend = config.storage.backend.lower()
    if backend == "memory":
        return MemoryProbeBackend()
    if backend == "redis":
        return RedisProbeBackend.from_url(
            config.storage.redis_url,
            timeout_seconds=config.storage.timeout_seconds,
        )
    raise ValueError(f"unknown storage backend {config.storage.backend!r}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config: AppConfig = app.state.config
    log.info("server_started",
             host=config.server.host,
             port=config.server.port,
             env=config.server.env,
             storage=config.storage.backend)

    yield

    await app.state.store.close()
    log.info("server_stopped")


def create_app(config: AppConfig | None = None, backend: ProbeBackend | None = None) -> FastAPI:
    """Build a fully wired application.

    ``backend`` overrides the one selected by ``config.storage.backend``.
    """
    if config is None:
        config = load_config()
    _setup_logging(config)

    server_stats = ServerStats()
    store = ProbeStore(
        backend=backend if backend is not None else _build_backend(config),
        history_size=config.storage.history_size,
        timeout_seconds=config.storage.timeout_seconds,
    )
    sweep_ms = config.limits.sweep_interval_seconds * 1000
    pipeline = IngestPipeline(
        limiter=SlidingWindowRateLimiter(sweep_interval_ms=sweep_ms),
        store=store,
        stats=server_stats,
        max_requests=config.limits.probe_max_requests,
        window_ms=int(config.limits.probe_window_seconds * 1000),
    )

    app = FastAPI(
        title="Probe Server",
        description="WiFi probe-count telemetry sink and occupancy dashboard",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.server_stats = server_stats
    app.state.store = store
    app.state.pipeline = pipeline
    app.state.status_limiter = SlidingWindowRateLimiter(sweep_interval_ms=sweep_ms)
    app.state.renderer = DashboardRenderer(
        theme=config.dashboard.theme,
        refresh_seconds=config.dashboard.refresh_seconds,
        title=config.dashboard.title,
        correction_factor=config.occupancy.correction_factor,
        max_capacity=config.occupancy.max_capacity,
    )

    @app.middleware("http")
    async def internal_error_boundary(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            server_stats.record_internal_error()
            log.error("unhandled_error", method=request.method,
                      path=request.url.path, exc_info=True)
            message = str(exc) if config.server.is_development else "Something went wrong"
            return JSONResponse(
                {"error": "Internal server error", "message": message},
                status_code=500,
                headers={"Access-Control-Allow-Origin": "*"},
            )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                {
                    "error": "Not found",
                    "message": f"Route {request.method} {request.url.path} not found",
                    "available_endpoints": AVAILABLE_ENDPOINTS,
                },
                status_code=404,
            )
        return JSONResponse({"error": exc.detail, "message": exc.detail},
                            status_code=exc.status_code, headers=exc.headers)

    app.include_router(probe_router)
    app.include_router(status_router)
    app.include_router(monitoring_router)
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the module-level app with uvicorn."""
    config: AppConfig = app.state.config
    uvicorn.run(app, host=config.server.host, port=config.server.port,
                log_level=config.logging.level.lower())


if __name__ == "__main__":
    run()
