"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Union

Timestamp = Union[datetime, int, float]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_ms(value: Timestamp) -> int:
    """Convert a timestamp to integer epoch milliseconds.

    Accepts timezone-aware datetimes or finite numbers of milliseconds. Naive
    datetimes, non-finite numbers and anything else are rejected rather than
    coerced.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError(f"Timestamp {value.isoformat()} is not timezone-aware.")
        delta = value - _EPOCH
        return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Unsupported timestamp value {value!r}.")
    if not math.isfinite(value):
        raise ValueError(f"Timestamp {value!r} is not finite.")
    return math.floor(value)


def from_epoch_ms(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


class TimedTemperature(Protocol):
    """Anything carrying a sensor id, an observation time and a temperature."""

    @property
    def sensor_id(self) -> str: ...

    @property
    def observed_at(self) -> Timestamp: ...

    @property
    def temperature(self) -> Optional[float]: ...


@dataclass(frozen=True, slots=True)
class Reading:
    """A single raw observation reported by a sensor."""

    sensor_id: str
    observed_at: datetime
    temperature: Optional[float]
    humidity: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Sensor:
    id: str
    name: str
    location_name: Optional[str] = None
    active: bool = True

    @property
    def display_name(self) -> str:
        if self.location_name:
            return f"{self.name} ({self.location_name})"
        return self.name


@dataclass(frozen=True, slots=True)
class Equipment:
    """A piece of monitored equipment, optionally wired to a sensor."""

    id: str
    name: str
    equipment_type: str
    location_name: Optional[str] = None
    sensor_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SampledPoint:
    """The averaged temperature of one sensor over one time bucket."""

    sensor_id: str
    bucket_start: datetime
    avg_temperature: float

    @property
    def observed_at(self) -> datetime:
        return self.bucket_start

    @property
    def temperature(self) -> float:
        return self.avg_temperature


@dataclass(frozen=True, slots=True)
class TemperatureLog:
    """A temperature check recorded by staff rather than reported by a sensor."""

    id: str
    location_name: str
    equipment_type: str
    temperature: float
    recorded_at: datetime
    status: str = "normal"
    station: Optional[str] = None
    recorded_by: Optional[str] = None
    sensor_id: Optional[str] = None
    notes: Optional[str] = None
    corrective_action: Optional[str] = None
