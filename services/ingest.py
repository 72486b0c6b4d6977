"""CSV ingest of sensor readings into the reading store."""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from datastore.readings import ReadingStore
from models.records import Reading

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("sensor_id", "observed_at", "temperature")


@dataclass(frozen=True)
class IngestError:
    row_number: int
    reason: str


@dataclass
class IngestResult:
    accepted: int = 0
    errors: List[IngestError] = field(default_factory=list)


def parse_timestamp(value: str) -> datetime:
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def parse_measurement(value: str) -> Optional[float]:
    """Parse a numeric cell; blank cells are missing values, not zero."""
    candidate = value.strip()
    if not candidate:
        return None
    parsed = float(candidate)
    if not math.isfinite(parsed):
        raise ValueError(f"Measurement {candidate!r} is not finite.")
    return parsed


class IngestService:
    """Parses uploaded CSV text and stores the valid rows for one organization."""

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def ingest_csv(self, org_id: str, contents: bytes) -> IngestResult:
        if not contents:
            raise ValueError("Uploaded file is empty.")
        try:
            text = contents.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValueError("Uploaded file is not valid UTF-8.") from exc

        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise ValueError("CSV file is missing a header row.")

        normalized = {name.lower().strip(): name for name in reader.fieldnames if name}
        missing = [column for column in REQUIRED_COLUMNS if column not in normalized]
        if missing:
            raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

        sensor_col = normalized["sensor_id"]
        timestamp_col = normalized["observed_at"]
        temperature_col = normalized["temperature"]
        humidity_col = normalized.get("humidity")
        known_sensors = {sensor.id for sensor in self.store.fetch_sensors(org_id, active_only=False)}

        result = IngestResult()
        readings: list[Reading] = []
        for row_number, row in enumerate(reader, start=2):
            sensor_raw = (row.get(sensor_col) or "").strip()
            timestamp_raw = (row.get(timestamp_col) or "").strip()
            temperature_raw = row.get(temperature_col) or ""

            if not sensor_raw:
                self._skip(result, org_id, row_number, "missing sensor_id")
                continue
            if sensor_raw not in known_sensors:
                self._skip(result, org_id, row_number, "unknown sensor", sensor_id=sensor_raw)
                continue
            if not timestamp_raw:
                self._skip(result, org_id, row_number, "missing observed_at", sensor_id=sensor_raw)
                continue

            try:
                observed_at = parse_timestamp(timestamp_raw)
            except ValueError:
                self._skip(result, org_id, row_number, "invalid timestamp", sensor_id=sensor_raw)
                continue

            try:
                temperature = parse_measurement(temperature_raw)
            except ValueError:
                self._skip(result, org_id, row_number, "invalid temperature", sensor_id=sensor_raw)
                continue

            try:
                humidity = parse_measurement(row.get(humidity_col) or "") if humidity_col else None
            except ValueError:
                self._skip(result, org_id, row_number, "invalid humidity", sensor_id=sensor_raw)
                continue

            readings.append(
                Reading(
                    sensor_id=sensor_raw,
                    observed_at=observed_at,
                    temperature=temperature,
                    humidity=humidity,
                )
            )

        result.accepted = self.store.add_readings(org_id, readings) if readings else 0
        logger.info(
            "Ingested CSV",
            extra={
                "org_id": org_id,
                "reading_count": result.accepted,
                "error_count": len(result.errors),
            },
        )
        return result

    @staticmethod
    def _skip(
        result: IngestResult,
        org_id: str,
        row_number: int,
        reason: str,
        sensor_id: Optional[str] = None,
    ) -> None:
        result.errors.append(IngestError(row_number=row_number, reason=reason))
        logger.warning(
            "Skipping row %s: %s",
            row_number,
            reason,
            extra={
                "org_id": org_id,
                "row_number": row_number,
                "reason": reason,
                "sensor_id": sensor_id,
            },
        )
