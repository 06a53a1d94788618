"""Ingest pipeline: rate-checks, validates, enriches and stores readings.

This is the core business logic. It depends on the rate limiter, the probe
store and the server counters, not on the HTTP framework.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

import structlog

from probe_server.core.errors import RateLimitExceeded, ValidationError
from probe_server.core.models import Accepted, IngestResult, Rejected
from probe_server.core.occupancy import total_devices
from probe_server.core.timeutil import to_epoch_ms, to_iso, utc_now
from probe_server.core.validator import validate

if TYPE_CHECKING:
    from probe_server.core.rate_limiter import SlidingWindowRateLimiter
    from probe_server.core.stats import ServerStats
    from probe_server.core.store import ProbeStore

log = structlog.get_logger()

MAX_REQUESTS = 10
WINDOW_MS = 60_000


class IngestPipeline:
    """RateCheck → Validate → Enrich → Persist for each inbound reading."""

    def __init__(
        self,
        limiter: SlidingWindowRateLimiter,
        store: ProbeStore,
        stats: ServerStats,
        max_requests: int = MAX_REQUESTS,
        window_ms: int = WINDOW_MS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._limiter = limiter
        self._store = store
        self._stats = stats
        self._max_requests = max_requests
        self._window_ms = window_ms
        self._clock = clock

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_ms(self) -> int:
        return self._window_ms

    async def ingest(self, payload: Any, source_identity: str) -> IngestResult:
        """Process one raw payload from ``source_identity``."""
        if not self._limiter.admit(source_identity, self._max_requests, self._window_ms):
            self._stats.record_rate_limited()
            exceeded = RateLimitExceeded(source_identity, self._max_requests, self._window_ms)
            return Rejected(kind="too_many_requests", message=str(exceeded))

        try:
            reading = validate(payload)
        except ValidationError as exc:
            self._stats.record_invalid()
            log.info("reading_rejected", source=source_identity, kind=exc.kind,
                     reason=exc.message)
            return Rejected(kind="invalid_format", message=exc.message, detail=exc.kind)

        now = self._clock()
        server_timestamp = to_iso(now)
        reading = dataclasses.replace(
            reading,
            server_timestamp=server_timestamp,
            received_at_ms=to_epoch_ms(now),
            source_ip=source_identity,
        )

        failure = await self._store.record(reading)
        if failure is not None:
            self._stats.record_storage_error()

        self._stats.record_accepted()
        log.info("reading_accepted", device=reading.device_id,
                 ssids=len(reading.ssid_counts),
                 total_devices=total_devices(reading.ssid_counts),
                 stored=failure is None)
        return Accepted(server_timestamp=server_timestamp, reading=reading,
                        stored=failure is None)
