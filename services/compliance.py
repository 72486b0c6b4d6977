"""HACCP compliance scoring of sensor readings against equipment limits."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from models.records import Equipment, Reading, TemperatureLog, epoch_ms
from services.series import TimeWindow

FRIDGE_MAX_F = 41.0
FREEZER_MAX_F = 0.0
HOT_HOLDING_MIN_F = 135.0


def is_violation(equipment_type: str, temperature: Optional[float]) -> bool:
    if temperature is None:
        return False
    if equipment_type in ("fridge", "cold_holding"):
        return temperature > FRIDGE_MAX_F
    if equipment_type == "freezer":
        return temperature > FREEZER_MAX_F
    if equipment_type == "hot_holding":
        return temperature < HOT_HOLDING_MIN_F
    return False


@dataclass
class EquipmentCompliance:
    equipment: Equipment
    total_readings: int = 0
    violations: int = 0
    latest_reading: Optional[Reading] = None

    @property
    def compliance_rate(self) -> float:
        if not self.total_readings:
            return 100.0
        return (self.total_readings - self.violations) / self.total_readings * 100


@dataclass
class ComplianceReport:
    window: TimeWindow
    items: List[EquipmentCompliance] = field(default_factory=list)
    total_readings: int = 0
    manual_logs: int = 0

    @property
    def total_violations(self) -> int:
        return sum(item.violations for item in self.items)

    @property
    def overall_compliance(self) -> float:
        if not self.items:
            return 100.0
        return sum(item.compliance_rate for item in self.items) / len(self.items)


def compliance_report(
    equipment: Sequence[Equipment],
    readings: Iterable[Reading],
    window: TimeWindow,
    logs: Iterable[TemperatureLog] = (),
) -> ComplianceReport:
    """Score every equipment item by the readings of its assigned sensor.

    Manual temperature logs are only counted; they do not affect the rates.
    """
    start_ms, end_ms = window.start_ms, window.end_ms
    by_sensor: Dict[str, List[Reading]] = defaultdict(list)
    total = 0
    for reading in readings:
        if start_ms <= epoch_ms(reading.observed_at) <= end_ms:
            by_sensor[reading.sensor_id].append(reading)
            total += 1

    manual = sum(1 for log in logs if start_ms <= epoch_ms(log.recorded_at) <= end_ms)
    report = ComplianceReport(window=window, total_readings=total, manual_logs=manual)
    for item in equipment:
        entry = EquipmentCompliance(equipment=item)
        sensor_readings = by_sensor.get(item.sensor_id, []) if item.sensor_id else []
        for reading in sensor_readings:
            entry.total_readings += 1
            if is_violation(item.equipment_type, reading.temperature):
                entry.violations += 1
            if entry.latest_reading is None or reading.observed_at > entry.latest_reading.observed_at:
                entry.latest_reading = reading
        report.items.append(entry)
    return report
