"""Tests for the probe store on the in-memory backend."""

from __future__ import annotations

import asyncio

import pytest

from probe_server.core.errors import StorageUnavailable
from probe_server.core.models import Reading
from probe_server.core.store import ProbeStore
from probe_server.storage.memory_storage import MemoryProbeBackend


def make_reading(i: int, device_id: str = "esp32-1", **counts) -> Reading:
    return Reading(
        device_id=device_id,
        sensor_timestamp=1_700_000_000 + i,
        ssid_counts=counts or {"Home-WiFi": i},
        server_timestamp=f"2024-01-01T00:00:{i % 60:02d}.000Z",
        received_at_ms=1_704_067_200_000 + i,
        source_ip="10.0.0.1",
    )


class BrokenBackend:
    async def commit(self, reading, update_stats, history_size):
        raise StorageUnavailable("commit", ConnectionError("refused"))

    async def load(self, history_limit):
        raise StorageUnavailable("load", ConnectionError("refused"))

    async def ping(self):
        return False

    async def close(self):
        pass


class HangingBackend(BrokenBackend):
    async def commit(self, reading, update_stats, history_size):
        await asyncio.sleep(10)

    async def load(self, history_limit):
        await asyncio.sleep(10)

    async def ping(self):
        await asyncio.sleep(10)
        return True


@pytest.fixture
def store():
    return ProbeStore(MemoryProbeBackend(), history_size=50)


@pytest.mark.asyncio
async def test_empty_store(store):
    assert await store.read_latest() is None
    assert await store.read_history(10) == []
    stats = await store.read_stats()
    assert stats.total_requests == 0
    assert stats.last_update is None
    assert stats.device_info == {}


@pytest.mark.asyncio
async def test_record_sets_latest_history_and_stats(store):
    reading = make_reading(1, **{"Home-WiFi": 3, "Guest": 2})
    assert await store.record(reading) is None

    assert await store.read_latest() == reading
    assert await store.read_history(10) == [reading]
    stats = await store.read_stats()
    assert stats.total_requests == 1
    assert stats.last_update == reading.server_timestamp
    assert stats.device_info["esp32-1"].last_seen == reading.server_timestamp
    assert stats.device_info["esp32-1"].last_ssid_counts == {"Home-WiFi": 3, "Guest": 2}


@pytest.mark.asyncio
async def test_read_latest_is_idempotent(store):
    await store.record(make_reading(1))
    first = await store.read_latest()
    second = await store.read_latest()
    assert first == second


@pytest.mark.asyncio
async def test_history_is_bounded_and_most_recent_first(store):
    readings = [make_reading(i) for i in range(60)]
    for reading in readings:
        await store.record(reading)

    history = await store.read_history(1000)
    assert len(history) == 50
    assert history == list(reversed(readings[10:]))
    assert (await store.read_history(5)) == list(reversed(readings[55:]))


@pytest.mark.asyncio
async def test_total_requests_counts_every_reading(store):
    for i in range(70):
        await store.record(make_reading(i, device_id=f"esp32-{i % 3}"))

    stats = await store.read_stats()
    assert stats.total_requests == 70
    assert sorted(stats.device_info) == ["esp32-0", "esp32-1", "esp32-2"]


@pytest.mark.asyncio
async def test_device_info_is_overwritten(store):
    await store.record(make_reading(1, A=1))
    await store.record(make_reading(2, B=5))

    info = (await store.read_stats()).device_info["esp32-1"]
    assert info.last_ssid_counts == {"B": 5}
    assert info.last_seen == "2024-01-01T00:00:02.000Z"


@pytest.mark.asyncio
async def test_concurrent_records_stay_consistent(store):
    await asyncio.gather(*(store.record(make_reading(i)) for i in range(30)))

    snapshot = await store.snapshot()
    assert snapshot.stats.total_requests == 30
    assert len(snapshot.history) == 30
    # Whatever order they completed in, latest is the head of history.
    assert snapshot.latest == snapshot.history[0]


@pytest.mark.asyncio
async def test_storage_failure_is_returned_not_raised():
    store = ProbeStore(BrokenBackend())
    signal = await store.record(make_reading(1))
    assert isinstance(signal, StorageUnavailable)
    assert signal.operation == "commit"

    assert await store.read_latest() is None
    assert await store.read_history(50) == []
    assert (await store.read_stats()).total_requests == 0
    assert await store.is_available() is False


@pytest.mark.asyncio
async def test_slow_backend_times_out():
    store = ProbeStore(HangingBackend(), timeout_seconds=0.05)
    signal = await store.record(make_reading(1))
    assert isinstance(signal, StorageUnavailable)
    assert isinstance(signal.cause, asyncio.TimeoutError)

    snapshot = await store.snapshot()
    assert snapshot.latest is None
    assert await store.is_available() is False


def test_history_size_must_be_positive():
    with pytest.raises(ValueError):
        ProbeStore(MemoryProbeBackend(), history_size=0)
