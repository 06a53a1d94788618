"""Shared test fixtures."""

from __future__ import annotations

import pytest
import structlog
from httpx import ASGITransport, AsyncClient
from redis.exceptions import WatchError

from probe_server.config import AppConfig
from probe_server.main import create_app
from probe_server.storage.memory_storage import MemoryProbeBackend


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep create_app's global structlog configuration from leaking between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def config():
    config = AppConfig()
    config.logging.level = "warning"
    return config


@pytest.fixture
def app(config):
    """A fresh, isolated application with in-memory storage for every test."""
    return create_app(config, backend=MemoryProbeBackend())


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class FakeRedisServer:
    """Just enough of Redis (strings, lists, WATCH/MULTI/EXEC) for the backend."""

    def __init__(self) -> None:
        self.strings: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.versions: dict[str, int] = {}
        self.error: Exception | None = None
        self.executed_transactions = 0
        self.commands: list[str] = []
        # Called right before EXEC is applied; lets a test play a concurrent writer.
        self.before_exec = None
        self.closed = False

    def check(self) -> None:
        if self.error is not None:
            raise self.error

    def apply(self, name: str, *args):
        self.commands.append(name)
        if name == "get":
            return self.strings.get(args[0])
        if name == "set":
            key, value = args
            self.strings[key] = value
            self.versions[key] = self.versions.get(key, 0) + 1
            return True
        if name == "lpush":
            key, value = args
            self.lists.setdefault(key, []).insert(0, value)
            return len(self.lists[key])
        if name == "ltrim":
            key, start, stop = args
            self.lists[key] = self.lists.get(key, [])[start:stop + 1]
            return True
        if name == "lrange":
            key, start, stop = args
            items = self.lists.get(key, [])
            return items[start:] if stop == -1 else items[start:stop + 1]
        raise NotImplementedError(name)

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self) -> bool:
        self.check()
        return True

    async def aclose(self) -> None:
        self.closed = True


class FakePipeline:
    def __init__(self, server: FakeRedisServer) -> None:
        self._server = server
        self._immediate = False
        self._watched: dict[str, int] = {}
        self._queued: list[tuple] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._queued.clear()
        self._watched.clear()

    async def watch(self, *keys: str) -> None:
        self._server.check()
        self._immediate = True
        self._watched = {key: self._server.versions.get(key, 0) for key in keys}

    def multi(self) -> None:
        self._immediate = False

    async def _run(self, name: str, *args):
        self._server.check()
        return self._server.apply(name, *args)

    def _command(self, name: str, *args):
        if self._immediate:
            return self._run(name, *args)
        self._queued.append((name, args))
        return self

    def get(self, key):
        return self._command("get", key)

    def set(self, key, value):
        return self._command("set", key, value)

    def lpush(self, key, value):
        return self._command("lpush", key, value)

    def ltrim(self, key, start, stop):
        return self._command("ltrim", key, start, stop)

    def lrange(self, key, start, stop):
        return self._command("lrange", key, start, stop)

    async def execute(self) -> list:
        self._server.check()
        if self._server.before_exec is not None:
            self._server.before_exec()
        for key, version in self._watched.items():
            if self._server.versions.get(key, 0) != version:
                self._queued.clear()
                raise WatchError("Watched variable changed.")
        results = [self._server.apply(name, *args) for name, args in self._queued]
        self._queued.clear()
        self._server.executed_transactions += 1
        return results


@pytest.fixture
def fake_redis():
    return FakeRedisServer()
