"""Tests for occupancy estimation and banding."""

from __future__ import annotations

import pytest

from probe_server.core.models import Reading
from probe_server.core.occupancy import estimate, round_half_up, total_devices


def reading(**counts) -> Reading:
    return Reading(device_id="esp32-1", sensor_timestamp=1, ssid_counts=counts)


def test_no_reading_is_empty_band():
    view = estimate(None)
    assert view.level == "empty"
    assert view.has_data is False
    assert view.display_label == "No Data"
    assert view.total_devices == 0
    assert view.estimated_people == 0
    assert view.gauge_percentage == 0


def test_worked_example():
    view = estimate(reading(A=10, B=20))
    assert view.total_devices == 30
    assert view.estimated_people == 21
    assert view.occupancy_percentage == 21
    assert view.level == "low"
    assert view.gauge_percentage == 25
    assert view.color == "#10b981"
    assert view.display_label == "People"


@pytest.mark.parametrize("devices, level, fill", [
    (0, "empty", 0),
    (1, "low", 25),          # 0.7 -> 1 person
    (36, "low", 25),         # 25.2 -> 25
    (37, "moderate", 50),    # 25.9 -> 26
    (72, "moderate", 50),    # 50.4 -> 50
    (73, "high", 75),        # 51.1 -> 51
    (107, "high", 75),       # 74.9 -> 75
    (108, "very-high", 100), # 75.6 -> 76
    (1000, "very-high", 100),
])
def test_band_boundaries(devices, level, fill):
    view = estimate(reading(A=devices))
    assert view.level == level
    assert view.gauge_percentage == fill


def test_reading_with_zero_devices_is_empty_but_has_data():
    view = estimate(reading(A=0, B=0))
    assert view.level == "empty"
    assert view.has_data is True
    assert view.display_label == "People"


def test_percentage_is_capped():
    view = estimate(reading(A=500))
    assert view.estimated_people == 350
    assert view.occupancy_percentage == 100


def test_capacity_scales_percentage():
    view = estimate(reading(A=30), max_capacity=50)
    assert view.estimated_people == 21
    assert view.occupancy_percentage == 42
    assert view.level == "moderate"


def test_rounding_is_half_up():
    assert round_half_up(10.5) == 11
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
    # 15 devices * 0.7 = 10.5 people
    assert estimate(reading(A=15)).estimated_people == 11


def test_non_numeric_counts_are_ignored():
    assert total_devices({"A": 3, "B": "7", "C": None, "D": True, "E": -4, "F": 2.0}) == 5
