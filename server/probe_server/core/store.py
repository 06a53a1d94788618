"""Probe store: latest reading, bounded history and running stats.

Depends only on the ProbeBackend protocol. Storage is best-effort: a write
that fails or times out is reported back as a StorageUnavailable value, and
a read that fails returns empty data.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from probe_server.core.errors import StorageUnavailable
from probe_server.core.models import ProbeSnapshot, Reading, Stats

if TYPE_CHECKING:
    from probe_server.storage.base import ProbeBackend

log = structlog.get_logger()

DEFAULT_HISTORY_SIZE = 50


class ProbeStore:
    """Owns latest/history/stats; mutated only through ``record``."""

    def __init__(
        self,
        backend: ProbeBackend,
        history_size: int = DEFAULT_HISTORY_SIZE,
        timeout_seconds: float = 2.0,
    ) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be at least 1, got {history_size}")
        self._backend = backend
        self._history_size = history_size
        self._timeout = timeout_seconds
        # Serializes this process's read-modify-write of stats.
        self._write_lock = asyncio.Lock()

    async def record(self, reading: Reading) -> StorageUnavailable | None:
        """Apply latest, history and stats for ``reading`` as one update."""

        def update_stats(current: dict | None) -> dict:
            return Stats.from_dict(current).with_reading(reading).to_dict()

        async def commit() -> None:
            async with self._write_lock:
                await self._backend.commit(reading.to_dict(), update_stats, self._history_size)

        try:
            # The timeout covers waiting for the lock too.
            await asyncio.wait_for(commit(), timeout=self._timeout)
        except StorageUnavailable as exc:
            log.warning("storage_unavailable", op="record", device=reading.device_id,
                        error=str(exc))
            return exc
        except asyncio.TimeoutError as exc:
            signal = StorageUnavailable("record", exc)
            log.warning("storage_unavailable", op="record", device=reading.device_id,
                        error="timeout", timeout_seconds=self._timeout)
            return signal
        return None

    async def snapshot(self, history_limit: int | None = None) -> ProbeSnapshot:
        """Read latest, history and stats together. Never raises for storage faults."""
        limit = self._history_size if history_limit is None else history_limit
        try:
            latest_raw, history_raw, stats_raw = await asyncio.wait_for(
                self._backend.load(max(limit, 0)), timeout=self._timeout,
            )
        except StorageUnavailable as exc:
            log.warning("storage_unavailable", op="read", error=str(exc))
            return ProbeSnapshot()
        except asyncio.TimeoutError:
            log.warning("storage_unavailable", op="read", error="timeout",
                        timeout_seconds=self._timeout)
            return ProbeSnapshot()

        try:
            return ProbeSnapshot(
                latest=Reading.from_dict(latest_raw) if latest_raw else None,
                history=tuple(Reading.from_dict(item) for item in history_raw[:max(limit, 0)]),
                stats=Stats.from_dict(stats_raw),
            )
        except (ValueError, TypeError, AttributeError) as exc:
            # Decodable but not the stored document shape.
            log.warning("storage_unavailable", op="read", error=f"malformed document: {exc}")
            return ProbeSnapshot()

    async def read_latest(self) -> Reading | None:
        return (await self.snapshot(history_limit=0)).latest

    async def read_history(self, limit: int) -> list[Reading]:
        return list((await self.snapshot(history_limit=limit)).history)

    async def read_stats(self) -> Stats:
        return (await self.snapshot(history_limit=0)).stats

    async def is_available(self) -> bool:
        try:
            return await asyncio.wait_for(self._backend.ping(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return False

    async def close(self) -> None:
        await self._backend.close()
