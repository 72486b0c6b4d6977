"""Per-session chart state: fetch orchestration around the pure chart transform."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable, List, Optional, Protocol, Sequence

from models.records import Reading, Sensor
from services.equipment import (
    EquipmentType,
    ReferenceLine,
    filter_sensors,
    reconcile_selection,
    reference_lines,
)
from services.sampler import interval_for_range, sample
from services.series import ChartSeries, TimeWindow, build_series

logger = logging.getLogger(__name__)

Subscriber = Callable[["ChartSession"], None]


class ReadingSource(Protocol):
    def fetch_sensors(self, org_id: str) -> List[Sensor]: ...

    def fetch_readings(self, org_id: str, start: datetime, end: datetime) -> List[Reading]: ...


@dataclass
class ChartView:
    series: ChartSeries
    interval_minutes: Optional[int]
    range_hours: float
    reference_lines: List[ReferenceLine] = field(default_factory=list)


def build_chart_view(
    sensors: Sequence[Sensor],
    readings: Sequence[Reading],
    selected_sensor_ids: Sequence[str],
    range_hours: float,
    equipment_type: Optional[EquipmentType] = None,
    sampled: bool = True,
    now: Optional[datetime] = None,
) -> ChartView:
    """Freeze one window, optionally downsample, and build the chart series."""
    window = TimeWindow.trailing(range_hours, now)
    interval = interval_for_range(range_hours) if sampled else None
    points = sample(readings, interval) if interval is not None else readings
    directory = {sensor.id: sensor for sensor in sensors}
    series = build_series(points, selected_sensor_ids, window, sensors=directory)
    logger.debug(
        "Built chart series",
        extra={
            "point_count": len(series.points),
            "series_count": len(series.series),
            "interval_minutes": interval,
            "range_hours": range_hours,
        },
    )
    return ChartView(
        series=series,
        interval_minutes=interval,
        range_hours=range_hours,
        reference_lines=reference_lines(equipment_type),
    )


class ChartSession:
    """Explicit state container for one viewer of the temperature chart.

    Mutations notify subscribers; ``load`` must be called by the owner after a
    change that needs fresh readings. A load that finishes after a newer one has
    started is discarded.
    """

    def __init__(
        self,
        source: ReadingSource,
        org_id: str,
        time_range_hours: float = 24,
        equipment_type: Optional[EquipmentType] = None,
        auto_select: int = 3,
    ) -> None:
        interval_for_range(time_range_hours)
        self.source = source
        self.org_id = org_id
        self.equipment_type = equipment_type
        self.auto_select = auto_select
        self._time_range_hours = time_range_hours
        self._sensors: List[Sensor] = []
        self._readings: List[Reading] = []
        self._selection: List[str] = []
        self._generation = 0
        self._subscribers: List[Subscriber] = []
        self._lock = Lock()

    @property
    def time_range_hours(self) -> float:
        return self._time_range_hours

    @property
    def sensors(self) -> List[Sensor]:
        with self._lock:
            return list(self._sensors)

    @property
    def readings(self) -> List[Reading]:
        with self._lock:
            return list(self._readings)

    @property
    def selection(self) -> List[str]:
        with self._lock:
            return list(self._selection)

    @property
    def visible_sensors(self) -> List[Sensor]:
        return filter_sensors(self.sensors, self.equipment_type)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set_time_range(self, hours: float) -> None:
        interval_for_range(hours)
        with self._lock:
            self._time_range_hours = hours
        self._notify()

    def set_selection(self, sensor_ids: Sequence[str]) -> None:
        with self._lock:
            self._selection = list(dict.fromkeys(sensor_ids))
        self._notify()

    def toggle_sensor(self, sensor_id: str) -> None:
        with self._lock:
            if sensor_id in self._selection:
                self._selection = [item for item in self._selection if item != sensor_id]
            else:
                self._selection = [*self._selection, sensor_id]
        self._notify()

    def load(self, now: Optional[datetime] = None) -> bool:
        """Fetch sensors and readings for the current range.

        Returns False when a newer load started before this one finished; its
        results are dropped in that case.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            hours = self._time_range_hours

        window = TimeWindow.trailing(hours, now)
        sensors = self.source.fetch_sensors(self.org_id)
        readings = self.source.fetch_readings(self.org_id, window.start, window.end)

        with self._lock:
            if generation != self._generation:
                logger.info(
                    "Discarding stale chart load",
                    extra={"org_id": self.org_id, "generation": generation},
                )
                return False
            self._sensors = list(sensors)
            self._readings = list(readings)
            visible = filter_sensors(self._sensors, self.equipment_type)
            self._selection = reconcile_selection(self._selection, visible, self.auto_select)

        logger.info(
            "Loaded chart data",
            extra={
                "org_id": self.org_id,
                "reading_count": len(readings),
                "range_hours": hours,
                "generation": generation,
            },
        )
        self._notify()
        return True

    def chart(self, sampled: bool = True, now: Optional[datetime] = None) -> ChartView:
        with self._lock:
            sensors = list(self._sensors)
            readings = list(self._readings)
            selection = list(self._selection)
            hours = self._time_range_hours
        return build_chart_view(
            sensors,
            readings,
            selection,
            hours,
            equipment_type=self.equipment_type,
            sampled=sampled,
            now=now,
        )

    def _notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(self)
