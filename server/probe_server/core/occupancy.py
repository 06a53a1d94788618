"""Occupancy estimation from per-SSID probe counts.

Probe counts overstate head count (one person often carries several
probing devices), so the device total is scaled by a fixed calibration
factor and then bucketed into five bands by percentage of capacity. The
gauge fill snaps to the band's upper bound rather than the raw percentage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from probe_server.core.models import OccupancyView, Reading

CORRECTION_FACTOR = 0.7
MAX_CAPACITY = 100


@dataclass(frozen=True)
class Band:
    level: str
    label: str
    upper: int  # inclusive upper bound, in percent of capacity
    color: str


EMPTY = Band("empty", "Empty", 0, "#8b5cf6")
BANDS = (
    EMPTY,
    Band("low", "Low", 25, "#10b981"),
    Band("moderate", "Moderate", 50, "#f59e0b"),
    Band("high", "High", 75, "#ef4444"),
    Band("very-high", "Very high", 100, "#dc2626"),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def total_devices(ssid_counts: Mapping[str, Any]) -> int:
    """Sum the numeric counts; anything else counts as zero."""
    total = 0
    for count in ssid_counts.values():
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            continue
        if math.isfinite(count) and count > 0:
            total += count
    return int(total)


def band_for(percentage: int) -> Band:
    for band in BANDS:
        if percentage <= band.upper:
            return band
    return BANDS[-1]


def estimate(
    latest: Reading | None,
    correction_factor: float = CORRECTION_FACTOR,
    max_capacity: int = MAX_CAPACITY,
) -> OccupancyView:
    """Map the latest reading to an occupancy band. Never raises."""
    devices = total_devices(latest.ssid_counts) if latest is not None else 0
    people = round_half_up(devices * correction_factor)
    capacity = max_capacity if max_capacity > 0 else MAX_CAPACITY
    percentage = min(100, round_half_up(people / capacity * 100))
    band = band_for(percentage)

    return OccupancyView(
        level=band.level,
        label=band.label,
        color=band.color,
        gauge_percentage=band.upper,
        total_devices=devices,
        estimated_people=people,
        occupancy_percentage=percentage,
        has_data=latest is not None,
    )
