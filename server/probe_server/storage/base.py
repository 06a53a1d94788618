"""Storage interface (port) for the probe store's persistence backend."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

# Stored documents are plain JSON-compatible dicts.
StatsUpdate = Callable[[Optional[dict]], dict]
RawSnapshot = tuple[Optional[dict], list[dict], Optional[dict]]

LATEST_KEY = "probe:latest"
HISTORY_KEY = "probe:history"
STATS_KEY = "probe:stats"


class ProbeBackend(Protocol):
    """Port: persists latest/history/stats as one atomic unit.

    Implementations raise StorageUnavailable when they cannot reach the
    underlying store.
    """

    async def commit(self, reading: dict, update_stats: StatsUpdate, history_size: int) -> None:
        """Set latest, prepend to history (capped) and replace stats together."""
        ...

    async def load(self, history_limit: int) -> RawSnapshot:
        """Return (latest, history, stats) read as one consistent snapshot."""
        ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
