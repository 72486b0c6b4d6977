"""In-process store for sensors, equipment, readings and manual temperature logs."""

from __future__ import annotations
import json
import logging
from bisect import bisect_left, bisect_right, insort
from dataclasses import asdict, dataclass, field
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from models.records import Equipment, Reading, Sensor, TemperatureLog, epoch_ms
from settings import get_settings

logger = logging.getLogger(__name__)


def _row_time(row: Tuple[int, Any]) -> int:
    return row[0]


def _time_slice(rows: Sequence[Tuple[int, Any]], start_ms: int, end_ms: int) -> List[Tuple[int, Any]]:
    lo = bisect_left(rows, start_ms, key=_row_time)
    hi = bisect_right(rows, end_ms, lo=lo, key=_row_time)
    return list(rows[lo:hi])


@dataclass
class _Organization:
    sensors: Dict[str, Sensor] = field(default_factory=dict)
    equipment: Dict[str, Equipment] = field(default_factory=dict)
    # both kept sorted by time
    readings: List[Tuple[int, Reading]] = field(default_factory=list)
    logs: List[Tuple[int, TemperatureLog]] = field(default_factory=list)


class ReadingStore:
    """In-process stand-in for the hosted sensor database."""

    def __init__(self, persistence_path: Optional[Path] = None, max_readings: int = 50000) -> None:
        self._orgs: Dict[str, _Organization] = {}
        self.persistence_path = persistence_path
        self.max_readings = max_readings
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_sensor(self, org_id: str, sensor: Sensor) -> None:
        with self._lock:
            self._org(org_id).sensors[sensor.id] = sensor
            self._persist()

    def put_equipment(self, org_id: str, equipment: Equipment) -> None:
        with self._lock:
            org = self._org(org_id)
            if equipment.sensor_id and equipment.sensor_id not in org.sensors:
                raise KeyError(
                    f"Sensor {equipment.sensor_id!r} is not registered for organization {org_id!r}."
                )
            org.equipment[equipment.id] = equipment
            self._persist()

    def add_readings(self, org_id: str, readings: Iterable[Reading]) -> int:
        batch = [(epoch_ms(reading.observed_at), reading) for reading in readings]
        with self._lock:
            org = self._org(org_id)
            for _, reading in batch:
                if reading.sensor_id not in org.sensors:
                    raise KeyError(
                        f"Sensor {reading.sensor_id!r} is not registered for organization {org_id!r}."
                    )
            for row in batch:
                insort(org.readings, row, key=_row_time)
            self._persist()
        logger.info("Stored readings", extra={"org_id": org_id, "reading_count": len(batch)})
        return len(batch)

    def get_sensor(self, org_id: str, sensor_id: str) -> Sensor:
        with self._lock:
            org = self._orgs.get(org_id)
            sensor = org.sensors.get(sensor_id) if org else None
        if sensor is None:
            raise KeyError(f"Sensor {sensor_id!r} not found for organization {org_id!r}.")
        return sensor

    def fetch_sensors(self, org_id: str, active_only: bool = True) -> List[Sensor]:
        """Return the organization's sensors ordered by name."""
        with self._lock:
            org = self._orgs.get(org_id)
            sensors = list(org.sensors.values()) if org else []
        if active_only:
            sensors = [sensor for sensor in sensors if sensor.active]
        return sorted(sensors, key=lambda sensor: (sensor.name, sensor.id))

    def fetch_equipment(self, org_id: str) -> List[Equipment]:
        with self._lock:
            org = self._orgs.get(org_id)
            items = list(org.equipment.values()) if org else []
        return sorted(items, key=lambda item: (item.name, item.id))

    def fetch_readings(
        self,
        org_id: str,
        start: datetime,
        end: datetime,
        sensor_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Reading]:
        """Return readings observed within ``[start, end]``, oldest first."""
        start_ms, end_ms = epoch_ms(start), epoch_ms(end)
        wanted = set(sensor_ids) if sensor_ids is not None else None
        cap = self.max_readings if limit is None else limit
        with self._lock:
            org = self._orgs.get(org_id)
            rows = _time_slice(org.readings, start_ms, end_ms) if org else []

        results: List[Reading] = []
        for _, reading in rows:
            if len(results) >= cap:
                break
            if wanted is not None and reading.sensor_id not in wanted:
                continue
            results.append(reading)
        return results

    def add_temperature_log(self, org_id: str, log: TemperatureLog) -> None:
        row = (epoch_ms(log.recorded_at), log)
        with self._lock:
            org = self._org(org_id)
            if log.sensor_id and log.sensor_id not in org.sensors:
                raise KeyError(f"Sensor {log.sensor_id!r} is not registered for organization {org_id!r}.")
            org.logs = [item for item in org.logs if item[1].id != log.id]
            insort(org.logs, row, key=_row_time)
            self._persist()
        logger.info("Stored temperature log", extra={"org_id": org_id, "sensor_id": log.sensor_id})

    def fetch_temperature_logs(self, org_id: str, start: datetime, end: datetime) -> List[TemperatureLog]:
        """Return manual logs recorded within ``[start, end]``, oldest first."""
        start_ms, end_ms = epoch_ms(start), epoch_ms(end)
        with self._lock:
            org = self._orgs.get(org_id)
            rows = _time_slice(org.logs, start_ms, end_ms) if org else []
        return [log for _, log in rows]

    def _org(self, org_id: str) -> _Organization:
        org = self._orgs.get(org_id)
        if org is None:
            org = self._orgs[org_id] = _Organization()
        return org

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            org_id: {
                "sensors": [asdict(sensor) for sensor in org.sensors.values()],
                "equipment": [asdict(item) for item in org.equipment.values()],
                "readings": [
                    {**asdict(reading), "observed_at": reading.observed_at.isoformat()}
                    for _, reading in org.readings
                ],
                "logs": [
                    {**asdict(log), "recorded_at": log.recorded_at.isoformat()}
                    for _, log in org.logs
                ],
            }
            for org_id, org in self._orgs.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data: Dict[str, Any] = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable reading store at %s", self.persistence_path)
            data = {}

        for org_id, payload in data.items():
            org = self._org(org_id)
            for item in payload.get("sensors", []):
                sensor = Sensor(**item)
                org.sensors[sensor.id] = sensor
            for item in payload.get("equipment", []):
                equipment = Equipment(**item)
                org.equipment[equipment.id] = equipment
            for item in payload.get("readings", []):
                reading = Reading(
                    sensor_id=item["sensor_id"],
                    observed_at=datetime.fromisoformat(item["observed_at"]),
                    temperature=item.get("temperature"),
                    humidity=item.get("humidity"),
                )
                org.readings.append((epoch_ms(reading.observed_at), reading))
            for item in payload.get("logs", []):
                log = TemperatureLog(**{**item, "recorded_at": datetime.fromisoformat(item["recorded_at"])})
                org.logs.append((epoch_ms(log.recorded_at), log))
            org.readings.sort(key=_row_time)
            org.logs.sort(key=_row_time)


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence, max_readings=settings.max_readings_per_query)
