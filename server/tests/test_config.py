"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from probe_server.config import load_config

ENV_KEYS = [
    "PORT", "NODE_ENV", "REDIS_URL", "PROBE_SERVER_PORT", "PROBE_SERVER_ENV",
    "PROBE_STORAGE_BACKEND", "PROBE_STORAGE_REDIS_URL", "PROBE_STORAGE_HISTORY_SIZE",
    "PROBE_DASHBOARD_THEME", "PROBE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")
    assert config.server.port == 3000
    assert config.server.is_development is False
    assert config.storage.backend == "memory"
    assert config.storage.history_size == 50
    assert config.limits.probe_max_requests == 10
    assert config.limits.probe_window_seconds == 60
    assert config.occupancy.correction_factor == 0.7
    assert config.occupancy.max_capacity == 100


def test_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n  port: 8080\n  env: development\n"
        "storage:\n  history_size: 100\n  unknown_key: 1\n"
        "dashboard:\n  theme: light\n"
    )
    config = load_config(path)
    assert config.server.port == 8080
    assert config.server.is_development is True
    assert config.storage.history_size == 100
    assert config.dashboard.theme == "light"
    assert not hasattr(config.storage, "unknown_key")


def test_deployment_env_names(tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "5000")
    monkeypatch.setenv("NODE_ENV", "development")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")

    config = load_config(tmp_path / "missing.yaml")
    assert config.server.port == 5000
    assert config.server.is_development is True
    assert config.storage.redis_url == "redis://cache:6379/1"
    assert config.storage.backend == "redis"


def test_namespaced_env_wins(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  port: 8080\n")
    monkeypatch.setenv("PORT", "5000")
    monkeypatch.setenv("PROBE_SERVER_PORT", "6000")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
    monkeypatch.setenv("PROBE_STORAGE_BACKEND", "memory")

    config = load_config(path)
    assert config.server.port == 6000
    assert config.storage.backend == "memory"


def test_history_size_below_one_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("PROBE_STORAGE_HISTORY_SIZE", "0")
    with pytest.raises(ValueError, match="history_size"):
        load_config(tmp_path / "missing.yaml")
