"""HTML status dashboard.

A single renderer produces the gauge page from (latest, stats, history);
the theme only swaps the palette.
"""

from __future__ import annotations

import html
import math
from datetime import datetime
from string import Template
from typing import Any, Callable, Sequence

from probe_server.core.models import Reading, Stats
from probe_server.core.occupancy import CORRECTION_FACTOR, MAX_CAPACITY, estimate
from probe_server.core.timeutil import parse_timestamp, utc_now

THEMES = {
    "dark": {"background": "#000", "text": "#fff", "muted": "#888", "faint": "#666",
             "track": "#333", "inner": "#000", "row": "#111"},
    "light": {"background": "#f5f5f5", "text": "#111", "muted": "#555", "faint": "#777",
              "track": "#ddd", "inner": "#f5f5f5", "row": "#fff"},
}


def format_relative_time(timestamp: Any, now: datetime | None = None) -> str:
    """``Updated 12s ago`` style text for a reading's timestamp."""
    if timestamp is None or timestamp == "":
        return "No data"
    when = parse_timestamp(timestamp)
    if when is None:
        return "Invalid"
    now = now or utc_now()
    diff_seconds = max(0, math.floor((now - when).total_seconds()))
    diff_minutes = diff_seconds // 60
    if diff_seconds < 60:
        return f"Updated {diff_seconds}s ago"
    if diff_minutes < 60:
        return f"Updated {diff_minutes}m ago"
    return f"Updated {diff_minutes // 60}h ago"


_PAGE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <meta name="robots" content="noindex">
  <title>$title</title>
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
      background: $background; color: $text;
      min-height: 100vh; display: flex; align-items: center; justify-content: center;
    }
    .meter-container { text-align: center; }
    .gauge { width: 300px; height: 300px; position: relative; margin: 0 auto 30px; }
    .gauge-bg {
      width: 100%; height: 100%; border-radius: 50%; padding: 20px;
      background: conic-gradient(from 135deg, $track 0deg, $track 270deg, transparent 270deg);
    }
    .gauge-fill {
      width: 100%; height: 100%; border-radius: 50%; position: relative;
      background: conic-gradient(from 135deg, $color 0deg, $color ${arc}deg, transparent ${arc}deg);
    }
    .gauge-inner {
      position: absolute; top: 50%; left: 50%; transform: translate(-50%, -50%);
      width: 200px; height: 200px; border-radius: 50%; background: $inner;
      display: flex; align-items: center; justify-content: center; flex-direction: column;
    }
    .count { font-size: 4rem; font-weight: 900; color: $color; line-height: 1;
             font-variant-numeric: tabular-nums; }
    .label { font-size: 1rem; color: $muted; text-transform: uppercase;
             letter-spacing: 1px; font-weight: 600; }
    .timestamp { font-size: 1.1rem; color: $faint; margin-top: 20px; }
    .no-data .count { color: $muted; }
    table { margin: 24px auto 0; border-collapse: collapse; color: $muted; }
    td { padding: 4px 12px; background: $row; text-align: left; }
    td.n { text-align: right; font-variant-numeric: tabular-nums; }
    .meta { margin-top: 12px; color: $faint; font-size: 0.85rem; }
  </style>
</head>
<body>
  <div class="meter-container $container_class" data-level="$level">
    <div class="gauge">
      <div class="gauge-bg">
        <div class="gauge-fill">
          <div class="gauge-inner">
            <div class="count">$count</div>
            <div class="label">$label</div>
          </div>
        </div>
      </div>
    </div>
    <div class="timestamp">$updated</div>
$breakdown
    <div class="meta">$meta</div>
  </div>
  <script>
    const refreshMs = $refresh_ms;
    let timer = setInterval(() => window.location.reload(), refreshMs);
    document.addEventListener('visibilitychange', () => {
      clearInterval(timer);
      if (!document.hidden) {
        timer = setInterval(() => window.location.reload(), refreshMs);
      }
    });
  </script>
</body>
</html>
""")


class DashboardRenderer:
    """Renders the status page for the browser."""

    def __init__(
        self,
        theme: str = "dark",
        refresh_seconds: int = 30,
        title: str = "Doe Status",
        correction_factor: float = CORRECTION_FACTOR,
        max_capacity: int = MAX_CAPACITY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if theme not in THEMES:
            raise ValueError(f"unknown dashboard theme {theme!r}; expected one of {sorted(THEMES)}")
        self._palette = THEMES[theme]
        self._refresh_seconds = refresh_seconds
        self._title = title
        self._correction_factor = correction_factor
        self._max_capacity = max_capacity
        self._clock = clock

    def _breakdown(self, latest: Reading | None) -> str:
        if latest is None:
            return ""
        rows = []
        for ssid, count in sorted(latest.ssid_counts.items(), key=lambda kv: str(kv[0])):
            rows.append(
                f"      <tr><td>{html.escape(str(ssid))}</td>"
                f"<td class=\"n\">{html.escape(str(count))}</td></tr>"
            )
        return "    <table>\n" + "\n".join(rows) + "\n    </table>"

    def render(self, latest: Reading | None, stats: Stats, history: Sequence[Reading]) -> str:
        occupancy = estimate(latest, self._correction_factor, self._max_capacity)
        if latest is not None:
            updated = format_relative_time(latest.server_timestamp, self._clock())
            meta = f"{len(history)} recent readings &middot; {stats.total_requests} total"
        else:
            updated = "Waiting for sensor data..."
            meta = ""

        return _PAGE.substitute(
            self._palette,
            title=html.escape(self._title),
            color=occupancy.color,
            arc=f"{occupancy.gauge_percentage * 2.7:g}",
            container_class="" if occupancy.has_data else "no-data",
            level=occupancy.level,
            count=occupancy.estimated_people if occupancy.has_data else "&mdash;",
            label=occupancy.display_label,
            updated=html.escape(updated),
            breakdown=self._breakdown(latest),
            meta=meta,
            refresh_ms=int(self._refresh_seconds * 1000),
        )
