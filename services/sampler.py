"""Fixed-interval downsampling of raw sensor readings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from models.records import SampledPoint, TimedTemperature, epoch_ms, from_epoch_ms

MS_PER_MINUTE = 60_000

# (max hours inclusive, bucket width in minutes)
_SAMPLING_STEPS: Tuple[Tuple[float, int], ...] = (
    (1, 5),
    (6, 30),
    (12, 60),
    (48, 120),
)
_WIDEST_INTERVAL_MINUTES = 240


@dataclass
class _Bucket:
    total: float = 0.0
    count: int = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1

    @property
    def mean(self) -> float:
        return self.total / self.count


def interval_for_range(hours: float) -> int:
    """Return the bucket width in minutes for a chart spanning ``hours``."""
    if isinstance(hours, bool) or not isinstance(hours, (int, float)):
        raise ValueError(f"Time range must be a number of hours, got {hours!r}.")
    if not math.isfinite(hours) or hours <= 0:
        raise ValueError(f"Time range must be a positive number of hours, got {hours!r}.")
    for limit, minutes in _SAMPLING_STEPS:
        if hours <= limit:
            return minutes
    return _WIDEST_INTERVAL_MINUTES


def round_one_decimal(value: float) -> float:
    # Half rounds up: 12.25 -> 12.3
    return math.floor(value * 10 + 0.5) / 10


def interval_to_ms(interval_minutes: float) -> int:
    if isinstance(interval_minutes, bool) or not isinstance(interval_minutes, (int, float)):
        raise ValueError(f"Sampling interval must be a number, got {interval_minutes!r}.")
    if not math.isfinite(interval_minutes) or interval_minutes <= 0:
        raise ValueError(
            f"Sampling interval must be a positive number of minutes, got {interval_minutes!r}."
        )
    interval_ms = int(interval_minutes * MS_PER_MINUTE)
    if interval_ms <= 0:
        raise ValueError(f"Sampling interval {interval_minutes!r} is shorter than 1ms.")
    return interval_ms


def bucket_start_ms(timestamp_ms: int, interval_ms: int) -> int:
    return (timestamp_ms // interval_ms) * interval_ms


def sample(readings: Iterable[TimedTemperature], interval_minutes: float) -> List[SampledPoint]:
    """Average readings into per-sensor buckets of ``interval_minutes``.

    Readings without a temperature are dropped before bucketing. Each emitted
    point is stamped with its bucket start rather than a raw reading time,
    so points from every sensor land on the same grid. The result is ordered by
    bucket start, then sensor id.
    """
    interval_ms = interval_to_ms(interval_minutes)
    buckets: Dict[Tuple[str, int], _Bucket] = {}

    for reading in readings:
        if reading.temperature is None:
            continue
        start = bucket_start_ms(epoch_ms(reading.observed_at), interval_ms)
        key = (reading.sensor_id, start)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket()
        bucket.add(float(reading.temperature))

    points = [
        SampledPoint(
            sensor_id=sensor_id,
            bucket_start=from_epoch_ms(start),
            avg_temperature=round_one_decimal(bucket.mean),
        )
        for (sensor_id, start), bucket in buckets.items()
    ]
    points.sort(key=lambda point: (point.bucket_start, point.sensor_id))
    return points
