"""Redis implementation of ProbeBackend.

Layout:
- probe:latest   JSON reading
- probe:history  list of JSON readings, most recent first, capped
- probe:stats    JSON stats document

A commit WATCHes probe:stats, computes the next stats document and applies
all three keys in one MULTI/EXEC, retrying if another writer got there
first.
"""

from __future__ import annotations

import json

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError, WatchError

from probe_server.core.errors import StorageUnavailable
from probe_server.storage.base import (
    HISTORY_KEY,
    LATEST_KEY,
    STATS_KEY,
    RawSnapshot,
    StatsUpdate,
)

log = structlog.get_logger()

MAX_WATCH_RETRIES = 5


def _next_stats(stats_raw: str | None, update_stats: StatsUpdate) -> dict:
    """Decode the stored stats and apply ``update_stats``.

    A stats document that is not JSON, or not the expected shape, is a
    storage fault: it leaves every key untouched.
    """
    try:
        current = json.loads(stats_raw) if stats_raw else None
        if current is not None and not isinstance(current, dict):
            raise TypeError(f"stats document is a {type(current).__name__}")
        return update_stats(current)
    except (ValueError, TypeError, AttributeError) as exc:
        raise StorageUnavailable("decode", exc) from exc


class RedisProbeBackend:
    """ProbeBackend backed by a Redis-compatible key-value store."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = 2.0) -> RedisProbeBackend:
        client = redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client)

    async def commit(self, reading: dict, update_stats: StatsUpdate, history_size: int) -> None:
        entry = json.dumps(reading, separators=(",", ":"))
        try:
            for attempt in range(1, MAX_WATCH_RETRIES + 1):
                async with self._client.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(STATS_KEY)
                        stats_raw = await pipe.get(STATS_KEY)
                        stats = _next_stats(stats_raw, update_stats)

                        pipe.multi()
                        pipe.set(LATEST_KEY, entry)
                        pipe.lpush(HISTORY_KEY, entry)
                        pipe.ltrim(HISTORY_KEY, 0, history_size - 1)
                        pipe.set(STATS_KEY, json.dumps(stats, separators=(",", ":")))
                        await pipe.execute()
                        return
                    except WatchError:
                        log.debug("stats_commit_conflict", attempt=attempt)
        except (RedisError, OSError) as exc:
            raise StorageUnavailable("commit", exc) from exc
        raise StorageUnavailable("commit", WatchError("stats kept changing during commit"))

    async def load(self, history_limit: int) -> RawSnapshot:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.get(LATEST_KEY)
                # LRANGE 0 -1 is the whole list, so skip it when no history is wanted.
                if history_limit > 0:
                    pipe.lrange(HISTORY_KEY, 0, history_limit - 1)
                pipe.get(STATS_KEY)
                results = await pipe.execute()
        except (RedisError, OSError) as exc:
            raise StorageUnavailable("load", exc) from exc

        if history_limit > 0:
            latest_raw, history_raw, stats_raw = results
        else:
            (latest_raw, stats_raw), history_raw = results, []

        try:
            latest = json.loads(latest_raw) if latest_raw else None
            history = [json.loads(item) for item in history_raw or []]
            stats = json.loads(stats_raw) if stats_raw else None
        except ValueError as exc:
            raise StorageUnavailable("decode", exc) from exc
        return latest, history, stats

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self._client.aclose()
