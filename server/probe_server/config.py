"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: PROBE_<SECTION>_<KEY> (uppercase).
The deployment-level names PORT, REDIS_URL and NODE_ENV are honored too.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    env: str = "production"  # "development" or "production"
    platform: str = "FastAPI"

    @property
    def is_development(self) -> bool:
        return self.env.lower() in ("development", "dev")


@dataclass
class StorageConfig:
    backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"
    history_size: int = 50
    timeout_seconds: float = 2.0


@dataclass
class LimitsConfig:
    probe_max_requests: int = 10
    probe_window_seconds: float = 60.0
    status_max_requests: int = 60
    status_window_seconds: float = 60.0
    sweep_interval_seconds: float = 60.0


@dataclass
class OccupancyConfig:
    correction_factor: float = 0.7
    max_capacity: int = 100


@dataclass
class DashboardConfig:
    theme: str = "dark"  # "dark" or "light"
    refresh_seconds: int = 30
    title: str = "Doe Status"


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    occupancy: OccupancyConfig = field(default_factory=OccupancyConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "PROBE_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "PROBE_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "PROBE_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "PROBE_SERVER_PLATFORM": lambda v: setattr(config.server, "platform", v),
        "PROBE_STORAGE_BACKEND": lambda v: setattr(config.storage, "backend", v),
        "PROBE_STORAGE_REDIS_URL": lambda v: setattr(config.storage, "redis_url", v),
        "PROBE_STORAGE_HISTORY_SIZE": lambda v: setattr(config.storage, "history_size", int(v)),
        "PROBE_STORAGE_TIMEOUT": lambda v: setattr(config.storage, "timeout_seconds", float(v)),
        "PROBE_LIMITS_PROBE_MAX_REQUESTS": lambda v: setattr(config.limits, "probe_max_requests", int(v)),
        "PROBE_LIMITS_PROBE_WINDOW": lambda v: setattr(config.limits, "probe_window_seconds", float(v)),
        "PROBE_LIMITS_STATUS_MAX_REQUESTS": lambda v: setattr(config.limits, "status_max_requests", int(v)),
        "PROBE_LIMITS_STATUS_WINDOW": lambda v: setattr(config.limits, "status_window_seconds", float(v)),
        "PROBE_OCCUPANCY_CORRECTION_FACTOR": lambda v: setattr(config.occupancy, "correction_factor", float(v)),
        "PROBE_OCCUPANCY_MAX_CAPACITY": lambda v: setattr(config.occupancy, "max_capacity", int(v)),
        "PROBE_DASHBOARD_THEME": lambda v: setattr(config.dashboard, "theme", v),
        "PROBE_DASHBOARD_REFRESH": lambda v: setattr(config.dashboard, "refresh_seconds", int(v)),
        "PROBE_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "PROBE_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    # Deployment-level names, applied first so the namespaced ones win.
    legacy = {
        "PORT": lambda v: setattr(config.server, "port", int(v)),
        "NODE_ENV": lambda v: setattr(config.server, "env", v),
        "REDIS_URL": lambda v: setattr(config.storage, "redis_url", v),
    }
    for env_key, setter in {**legacy, **mapping}.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)

    redis_url_set = "REDIS_URL" in os.environ or "PROBE_STORAGE_REDIS_URL" in os.environ
    if redis_url_set and "PROBE_STORAGE_BACKEND" not in os.environ:
        config.storage.backend = "redis"


def _apply_section(section: object, values: dict) -> None:
    names = {f.name for f in fields(section)}
    for k, v in values.items():
        if k in names:
            setattr(section, k, v)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    if config_path is None:
        config_path = Path("config.yaml")
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in fields(config):
            if isinstance(raw.get(section.name), dict):
                _apply_section(getattr(config, section.name), raw[section.name])

    # Environment overrides always win
    _apply_env_overrides(config)

    if config.storage.history_size < 1:
        raise ValueError(f"storage.history_size must be at least 1, got {config.storage.history_size}")
    return config
