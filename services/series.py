"""Assembly of per-sensor readings into a merged, chart-ready time series."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from models.records import Sensor, TimedTemperature, epoch_ms

COLOR_PALETTE: tuple[str, ...] = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F97316",
)

SERIES_KEY_PREFIX = "sensor_"


def series_key(sensor_id: str) -> str:
    return f"{SERIES_KEY_PREFIX}{sensor_id}"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive ``[start, end]`` range, frozen for one chart pass."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start_ms > self.end_ms:
            raise ValueError(
                f"Time window start {self.start.isoformat()} is after end {self.end.isoformat()}."
            )

    @classmethod
    def trailing(cls, hours: float, now: Optional[datetime] = None) -> "TimeWindow":
        """Window covering the ``hours`` leading up to ``now``."""
        if isinstance(hours, bool) or not isinstance(hours, (int, float)):
            raise ValueError(f"Time range must be a number of hours, got {hours!r}.")
        if not math.isfinite(hours) or hours <= 0:
            raise ValueError(f"Time range must be a positive number of hours, got {hours!r}.")
        end = now if now is not None else datetime.now(timezone.utc)
        try:
            start = end - timedelta(hours=hours)
        except OverflowError as exc:
            raise ValueError(f"Time range of {hours!r} hours is out of range.") from exc
        return cls(start=start, end=end)

    @property
    def start_ms(self) -> int:
        return epoch_ms(self.start)

    @property
    def end_ms(self) -> int:
        return epoch_ms(self.end)


@dataclass(frozen=True)
class LineSeries:
    key: str
    sensor_id: str
    name: str
    color: str


@dataclass
class ChartPoint:
    """Values of every sensor reporting at one exact timestamp."""

    time: int
    values: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"time": self.time, "timestamp": self.time}
        payload.update(self.values)
        return payload


@dataclass
class ChartSeries:
    points: List[ChartPoint]
    series: List[LineSeries]
    window: TimeWindow

    @property
    def is_empty(self) -> bool:
        return not self.points

    def as_dict(self) -> Dict[str, Any]:
        return {
            "points": [point.as_dict() for point in self.points],
            "series": [
                {"key": line.key, "sensor_id": line.sensor_id, "name": line.name, "color": line.color}
                for line in self.series
            ],
            "window": {"start": self.window.start_ms, "end": self.window.end_ms},
        }


def _ordered_unique(ids: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for sensor_id in ids:
        if sensor_id in seen:
            continue
        seen.add(sensor_id)
        ordered.append(sensor_id)
    return ordered


def assign_colors(
    selected_sensor_ids: Sequence[str],
    palette: Sequence[str] = COLOR_PALETTE,
) -> Dict[str, str]:
    """Map each selected sensor to ``palette[position % len(palette)]``.

    Position is selection order, so reordering the selection reassigns colours.
    """
    if not palette:
        raise ValueError("Colour palette must not be empty.")
    return {
        sensor_id: palette[index % len(palette)]
        for index, sensor_id in enumerate(_ordered_unique(selected_sensor_ids))
    }


def build_series(
    readings: Iterable[TimedTemperature],
    selected_sensor_ids: Sequence[str],
    window: TimeWindow,
    sensors: Optional[Mapping[str, Sensor]] = None,
) -> ChartSeries:
    """Merge readings of the selected sensors into one sparse series per timestamp.

    Only readings with a temperature and a timestamp inside ``window`` (bounds
    included) contribute. Each point holds fields only for the sensors that
    reported at exactly that time; missing sensors are absent, not zero.
    """
    selected = _ordered_unique(selected_sensor_ids)
    selected_set = set(selected)
    directory: Mapping[str, Sensor] = sensors or {}
    start_ms, end_ms = window.start_ms, window.end_ms

    kept: List[tuple[int, str, float]] = []
    for reading in readings:
        if reading.sensor_id not in selected_set or reading.temperature is None:
            continue
        timestamp = epoch_ms(reading.observed_at)
        if start_ms <= timestamp <= end_ms:
            kept.append((timestamp, reading.sensor_id, float(reading.temperature)))
    kept.sort(key=lambda item: item[0])

    by_time: Dict[int, ChartPoint] = {}
    for timestamp, sensor_id, temperature in kept:
        point = by_time.get(timestamp)
        if point is None:
            point = by_time[timestamp] = ChartPoint(time=timestamp)
        point.values[series_key(sensor_id)] = temperature

    colors = assign_colors(selected)
    lines = []
    for sensor_id in selected:
        sensor = directory.get(sensor_id)
        lines.append(
            LineSeries(
                key=series_key(sensor_id),
                sensor_id=sensor_id,
                name=sensor.display_name if sensor is not None else sensor_id,
                color=colors[sensor_id],
            )
        )

    return ChartSeries(points=list(by_time.values()), series=lines, window=window)
