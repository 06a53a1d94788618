"""Server counters for the ingest path.

In-memory only; these describe this process, not the stored data.
No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class ServerStats:
    """Thread-safe ingest counters plus process uptime."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        self.readings_accepted: int = 0
        self.readings_invalid: int = 0
        self.rate_limited: int = 0
        self.storage_errors: int = 0
        self.internal_errors: int = 0

    def record_accepted(self) -> None:
        with self._lock:
            self.readings_accepted += 1

    def record_invalid(self) -> None:
        with self._lock:
            self.readings_invalid += 1

    def record_rate_limited(self) -> None:
        with self._lock:
            self.rate_limited += 1

    def record_storage_error(self) -> None:
        with self._lock:
            self.storage_errors += 1

    def record_internal_error(self) -> None:
        with self._lock:
            self.internal_errors += 1

    @property
    def uptime_seconds(self) -> float:
        return round(time.time() - self._started_at, 1)

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all counters."""
        with self._lock:
            return {
                "uptime_seconds": self.uptime_seconds,
                "readings_accepted": self.readings_accepted,
                "readings_invalid": self.readings_invalid,
                "rate_limited": self.rate_limited,
                "storage_errors": self.storage_errors,
                "internal_errors": self.internal_errors,
            }
