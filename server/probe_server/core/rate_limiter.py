"""Per-source sliding-window rate limiter.

Keeps, for every source key, the admission instants inside the trailing
window. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

import structlog

log = structlog.get_logger()

UNKNOWN_SOURCE = "unknown"


def _now_ms() -> float:
    return time.time() * 1000


class SlidingWindowRateLimiter:
    """Thread-safe sliding-window admission control.

    A call is admitted when fewer than ``max_requests`` admissions for the
    same key happened in the last ``window_ms``. Denied attempts are not
    recorded, so a client hammering the endpoint does not extend its own
    lockout.
    """

    def __init__(
        self,
        sweep_interval_ms: float = 60_000,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval_ms = sweep_interval_ms
        self._last_sweep = clock()
        # source_key → admission instants (ms), oldest first
        self._windows: dict[str, deque[float]] = {}
        # source_key → window_ms used on its last admit, for sweeping
        self._window_sizes: dict[str, float] = {}

    def admit(self, source_key: str, max_requests: int, window_ms: float) -> bool:
        """Record and admit a request for ``source_key``, or deny it."""
        key = str(source_key) if source_key else UNKNOWN_SOURCE
        now = self._clock()
        window_start = now - window_ms

        with self._lock:
            timestamps = self._windows.get(key)
            if timestamps is None:
                timestamps = deque()
            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()

            if len(timestamps) >= max_requests:
                self._store(key, timestamps, window_ms)
                allowed = False
            else:
                timestamps.append(now)
                self._store(key, timestamps, window_ms)
                allowed = True

            if now - self._last_sweep >= self._sweep_interval_ms:
                self._sweep_locked(now)

        if not allowed:
            log.warning("rate_limited", source=key, limit=max_requests,
                        window_ms=window_ms)
        return allowed

    def _store(self, key: str, timestamps: deque[float], window_ms: float) -> None:
        """Keep the window for ``key`` only while it holds instants. Caller holds lock."""
        if timestamps:
            self._windows[key] = timestamps
            self._window_sizes[key] = window_ms
        else:
            self._windows.pop(key, None)
            self._window_sizes.pop(key, None)

    def _sweep_locked(self, now: float) -> int:
        removed = 0
        for key in list(self._windows):
            timestamps = self._windows[key]
            window_start = now - self._window_sizes.get(key, 0)
            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()
            if not timestamps:
                del self._windows[key]
                self._window_sizes.pop(key, None)
                removed += 1
        self._last_sweep = now
        return removed

    def sweep(self) -> int:
        """Drop every key whose instants have all aged out. Returns how many."""
        with self._lock:
            removed = self._sweep_locked(self._clock())
        if removed:
            log.debug("rate_limit_sweep", removed=removed)
        return removed

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)
