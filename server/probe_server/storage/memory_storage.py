"""In-process implementation of ProbeBackend."""

from __future__ import annotations

import asyncio

from probe_server.storage.base import RawSnapshot, StatsUpdate


class MemoryProbeBackend:
    """ProbeBackend holding a single immutable snapshot. Zero dependencies.

    Writers build the next snapshot and swap it in with one assignment, so a
    reader never sees a half-applied commit and never waits on a writer.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state: tuple[dict | None, tuple[dict, ...], dict | None] = (None, (), None)

    async def commit(self, reading: dict, update_stats: StatsUpdate, history_size: int) -> None:
        async with self._lock:
            _, history, stats = self._state
            new_history = ((reading,) + history)[:history_size]
            self._state = (reading, new_history, update_stats(stats))

    async def load(self, history_limit: int) -> RawSnapshot:
        latest, history, stats = self._state
        return latest, list(history[:max(history_limit, 0)]), stats

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass
