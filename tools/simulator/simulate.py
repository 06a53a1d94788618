#!/usr/bin/env python3
"""WiFi probe sensor simulator.

Plays one or more ESP32-style sensors posting per-SSID device counts to the
server, so the ingest path and the dashboard can be exercised without
hardware.

Usage:
    # One sensor, a reading every 10 seconds for 5 minutes
    python -m tools.simulator.simulate --server http://localhost:3000 --duration 300

    # Three sensors using the nested ``data`` payload shape
    python -m tools.simulator.simulate --sensors 3 --shape nested --interval 6

    # Busy venue: more networks, higher counts
    python -m tools.simulator.simulate --ssids 12 --max-devices 40
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import time
import uuid
from dataclasses import dataclass, field

import httpx

SSID_NAMES = [
    "Home-WiFi", "Guest", "eduroam", "CafeNet", "Starbucks WiFi", "xfinitywifi",
    "NETGEAR42", "TP-Link_5G", "iPhone", "AndroidAP", "Office-Secure", "Linksys",
    "FreeWiFi", "Airport_Free", "DIRECT-printer", "Library-Public",
]


@dataclass
class SimSensor:
    device_id: str
    counts: dict[str, int] = field(default_factory=dict)
    readings_sent: int = 0
    rate_limited: int = 0
    errors: int = 0


def pick_ssids(n: int, max_devices: int) -> dict[str, int]:
    """Choose ``n`` networks with a starting device count each."""
    names = random.sample(SSID_NAMES, k=min(n, len(SSID_NAMES)))
    return {name: random.randint(0, max_devices) for name in names}


def drift_counts(sensor: SimSensor, max_devices: int) -> None:
    """Random walk of each network's count; networks occasionally vanish or appear."""
    for ssid in list(sensor.counts):
        step = random.choice([-2, -1, 0, 0, 1, 2])
        sensor.counts[ssid] = max(0, min(max_devices, sensor.counts[ssid] + step))

    if len(sensor.counts) > 1 and random.random() < 0.05:
        del sensor.counts[random.choice(list(sensor.counts))]
    if random.random() < 0.05:
        spare = [name for name in SSID_NAMES if name not in sensor.counts]
        if spare:
            sensor.counts[random.choice(spare)] = random.randint(0, 3)


def make_payload(sensor: SimSensor, shape: str) -> dict:
    """Create one reading in the flat or nested payload shape."""
    payload = {"device_id": sensor.device_id, "timestamp": int(time.time())}
    if shape == "nested":
        payload["data"] = dict(sensor.counts)
    else:
        payload.update(sensor.counts)
    return payload


async def run_sensor(
    client: httpx.AsyncClient,
    sensor: SimSensor,
    server_url: str,
    interval: float,
    duration_seconds: float,
    shape: str,
    max_devices: int,
) -> None:
    """Post readings from a single sensor until the duration elapses."""
    end_time = time.monotonic() + duration_seconds

    while time.monotonic() < end_time:
        drift_counts(sensor, max_devices)
        payload = make_payload(sensor, shape)

        try:
            resp = await client.post(
                f"{server_url}/api/probe",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                sensor.readings_sent += 1
            elif resp.status_code == 429:
                sensor.rate_limited += 1
            else:
                sensor.errors += 1
        except httpx.RequestError:
            sensor.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    sensors = [
        SimSensor(
            device_id=f"esp32-{uuid.uuid4().hex[:6]}",
            counts=pick_ssids(args.ssids, args.max_devices),
        )
        for _ in range(args.sensors)
    ]

    print(f"Starting simulation: {args.sensors} sensor(s), one reading every {args.interval}s")
    print(f"  Networks per sensor: {args.ssids}")
    print(f"  Payload shape: {args.shape}")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_sensor(client, sensor, args.server, args.interval, args.duration,
                       args.shape, args.max_devices)
            for sensor in sensors
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Readings accepted: {sum(s.readings_sent for s in sensors)}")
        print(f"  Rate limited: {sum(s.rate_limited for s in sensors)}")
        print(f"  Errors: {sum(s.errors for s in sensors)}")

        # Check what the server made of it
        try:
            resp = await client.get(f"{args.server}/status")
            if resp.status_code == 200:
                status = resp.json()
                stats = status["probe_data"]["stats"]
                occupancy = status.get("occupancy", {})
                print("\nServer status:")
                print(f"  Total requests: {stats['totalRequests']}")
                print(f"  History length: {len(status['probe_data']['history'])}")
                print(f"  Devices seen: {occupancy.get('total_devices')}")
                print(f"  Estimated people: {occupancy.get('estimated_people')} ({occupancy.get('level')})")
        except httpx.RequestError as exc:
            print(f"\nCould not fetch server status: {exc}")


def main():
    parser = argparse.ArgumentParser(description="WiFi probe sensor simulator")
    parser.add_argument("--server", default="http://localhost:3000", help="Server URL")
    parser.add_argument("--sensors", type=int, default=1, help="Number of simulated sensors")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--interval", type=float, default=10.0,
                        help="Seconds between readings per sensor (server allows 10/min per IP)")
    parser.add_argument("--ssids", type=int, default=5, help="Networks seen by each sensor")
    parser.add_argument("--max-devices", type=int, default=15, help="Upper bound per network")
    parser.add_argument("--shape", choices=["flat", "nested"], default="flat",
                        help="Payload shape: SSIDs as top-level keys or under 'data'")

    args = parser.parse_args()
    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
