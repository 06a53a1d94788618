"""Probe server: core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the boundary. The stored
document layout (``data``, ``received_at``, ``totalRequests`` ...) is the one
the dashboard and existing stored keys already use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Reading:
    """One telemetry sample from the sensor.

    ``server_timestamp``, ``received_at_ms`` and ``source_ip`` are unset until
    the ingest pipeline stamps the reading on receipt.
    """
    device_id: str
    sensor_timestamp: Union[int, float, str]
    ssid_counts: dict[str, Any]
    server_timestamp: str | None = None
    received_at_ms: int | None = None
    source_ip: str | None = None

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "timestamp": self.sensor_timestamp,
            "data": dict(self.ssid_counts),
            "server_timestamp": self.server_timestamp,
            "received_at": self.received_at_ms,
            "client_ip": self.source_ip,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Reading:
        return cls(
            device_id=data.get("device_id", ""),
            sensor_timestamp=data.get("timestamp"),
            ssid_counts=dict(data.get("data") or {}),
            server_timestamp=data.get("server_timestamp"),
            received_at_ms=data.get("received_at"),
            source_ip=data.get("client_ip"),
        )


@dataclass(frozen=True)
class DeviceInfo:
    last_seen: str
    last_ssid_counts: dict[str, Any]

    def to_dict(self) -> dict:
        return {"lastSeen": self.last_seen, "lastData": dict(self.last_ssid_counts)}

    @classmethod
    def from_dict(cls, data: dict) -> DeviceInfo:
        return cls(
            last_seen=data.get("lastSeen", ""),
            last_ssid_counts=dict(data.get("lastData") or {}),
        )


@dataclass(frozen=True)
class Stats:
    """Running aggregate over every accepted reading."""
    total_requests: int = 0
    last_update: str | None = None
    device_info: dict[str, DeviceInfo] = field(default_factory=dict)

    def with_reading(self, reading: Reading) -> Stats:
        """Return the stats that result from accepting ``reading``."""
        device_info = dict(self.device_info)
        device_info[reading.device_id] = DeviceInfo(
            last_seen=reading.server_timestamp or "",
            last_ssid_counts=dict(reading.ssid_counts),
        )
        return Stats(
            total_requests=self.total_requests + 1,
            last_update=reading.server_timestamp,
            device_info=device_info,
        )

    def to_dict(self) -> dict:
        return {
            "totalRequests": self.total_requests,
            "lastUpdate": self.last_update,
            "deviceInfo": {
                device_id: info.to_dict()
                for device_id, info in self.device_info.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> Stats:
        if not data:
            return cls()
        return cls(
            total_requests=int(data.get("totalRequests", 0)),
            last_update=data.get("lastUpdate"),
            device_info={
                device_id: DeviceInfo.from_dict(info)
                for device_id, info in (data.get("deviceInfo") or {}).items()
            },
        )


@dataclass(frozen=True)
class ProbeSnapshot:
    """A consistent view of everything the store holds."""
    latest: Reading | None = None
    history: tuple[Reading, ...] = ()
    stats: Stats = field(default_factory=Stats)


@dataclass(frozen=True)
class OccupancyView:
    level: str
    label: str
    color: str
    gauge_percentage: int
    total_devices: int
    estimated_people: int
    occupancy_percentage: int
    has_data: bool

    @property
    def display_label(self) -> str:
        return "People" if self.has_data else "No Data"

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "label": self.label,
            "color": self.color,
            "gauge_percentage": self.gauge_percentage,
            "total_devices": self.total_devices,
            "estimated_people": self.estimated_people,
            "occupancy_percentage": self.occupancy_percentage,
            "has_data": self.has_data,
        }


@dataclass(frozen=True)
class Accepted:
    server_timestamp: str
    reading: Reading
    stored: bool = True


@dataclass(frozen=True)
class Rejected:
    kind: str  # "too_many_requests" or "invalid_format"
    message: str
    detail: str = ""


IngestResult = Union[Accepted, Rejected]
