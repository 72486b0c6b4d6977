"""Flat record exports of readings and compliance results."""

from __future__ import annotations

import csv
import io
import json
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from models.records import Equipment, Reading, Sensor, TemperatureLog
from services.compliance import ComplianceReport

Row = Dict[str, Any]


class ExportKind(str, Enum):
    readings = "readings"
    compliance = "compliance"
    manual = "manual"


class ExportFormat(str, Enum):
    csv = "csv"
    json = "json"


_FILENAME_STEMS = {
    ExportKind.readings: "temperature-readings",
    ExportKind.compliance: "compliance-report",
    ExportKind.manual: "manual-temperature-logs",
}

MEDIA_TYPES = {
    ExportFormat.csv: "text/csv",
    ExportFormat.json: "application/json",
}


def export_filename(kind: ExportKind, hours: float, fmt: ExportFormat) -> str:
    return f"{_FILENAME_STEMS[kind]}-{hours:g}h.{fmt.value}"


def reading_rows(
    readings: Iterable[Reading],
    sensors: Mapping[str, Sensor],
    equipment: Sequence[Equipment],
) -> List[Row]:
    equipment_by_sensor = {item.sensor_id: item for item in equipment if item.sensor_id}
    rows: List[Row] = []
    for reading in readings:
        sensor = sensors.get(reading.sensor_id)
        assigned = equipment_by_sensor.get(reading.sensor_id)
        rows.append(
            {
                "Sensor Name": sensor.name if sensor else "Unknown",
                "Location": (sensor.location_name if sensor else None) or "Unassigned",
                "Temperature (°F)": reading.temperature,
                "Humidity (%)": reading.humidity,
                "Observed At": reading.observed_at.isoformat(),
                "Equipment Type": assigned.equipment_type if assigned else "Unassigned",
            }
        )
    return rows


def compliance_rows(report: ComplianceReport, sensors: Mapping[str, Sensor]) -> List[Row]:
    rows: List[Row] = []
    for item in report.items:
        sensor = sensors.get(item.equipment.sensor_id) if item.equipment.sensor_id else None
        rows.append(
            {
                "Equipment Name": item.equipment.name,
                "Equipment Type": item.equipment.equipment_type,
                "Location": item.equipment.location_name,
                "Total Readings": item.total_readings,
                "Violations": item.violations,
                "Compliance Rate (%)": f"{item.compliance_rate:.2f}",
                "Sensor Name": sensor.name if sensor else "No sensor assigned",
            }
        )
    return rows


def manual_log_rows(logs: Iterable[TemperatureLog]) -> List[Row]:
    return [
        {
            "Location": log.location_name,
            "Station": log.station or "N/A",
            "Equipment Type": log.equipment_type,
            "Temperature (°F)": log.temperature,
            "Status": log.status,
            "Recorded At": log.recorded_at.isoformat(),
            "Recorded By": log.recorded_by or "System",
            "Notes": log.notes or "",
            "Corrective Action": log.corrective_action or "",
        }
        for log in logs
    ]


def to_csv(rows: Sequence[Row]) -> str:
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue()


def to_json(rows: Sequence[Row]) -> str:
    return json.dumps(list(rows), indent=2, ensure_ascii=False)


def render(rows: Sequence[Row], fmt: ExportFormat) -> str:
    if fmt is ExportFormat.csv:
        return to_csv(rows)
    return to_json(rows)
