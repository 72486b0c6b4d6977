"""Equipment categories, HACCP limit lines and sensor selection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.records import Sensor


class EquipmentType(str, Enum):
    fridge = "fridge"
    cold_holding = "cold_holding"
    freezer = "freezer"
    hot_holding = "hot_holding"


@dataclass(frozen=True)
class ReferenceLine:
    """A horizontal limit drawn across a temperature chart."""

    y: float
    stroke: str
    label: str


_LOCATION_KEYWORDS: Dict[EquipmentType, Tuple[str, ...]] = {
    EquipmentType.fridge: ("fridge", "cooler", "cold"),
    EquipmentType.cold_holding: ("fridge", "cooler", "cold"),
    EquipmentType.freezer: ("freezer",),
    EquipmentType.hot_holding: ("hot", "warming"),
}

_REFERENCE_LINES: Dict[EquipmentType, Tuple[ReferenceLine, ...]] = {
    EquipmentType.fridge: (ReferenceLine(y=41, stroke="#F59E0B", label="41°F Limit"),),
    EquipmentType.freezer: (ReferenceLine(y=0, stroke="#06B6D4", label="0°F Limit"),),
    EquipmentType.hot_holding: (ReferenceLine(y=135, stroke="#EF4444", label="135°F Minimum"),),
}


def parse_equipment_type(value: Optional[str]) -> Optional[EquipmentType]:
    if value is None:
        return None
    candidate = value.strip().lower()
    if not candidate:
        return None
    try:
        return EquipmentType(candidate)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in EquipmentType)
        raise ValueError(f"Unknown equipment type {value!r}; expected one of: {allowed}.") from exc


def matches_equipment_type(sensor: Sensor, equipment_type: EquipmentType) -> bool:
    if not sensor.location_name:
        return False
    location = sensor.location_name.lower()
    return any(keyword in location for keyword in _LOCATION_KEYWORDS[equipment_type])


def filter_sensors(
    sensors: Iterable[Sensor], equipment_type: Optional[EquipmentType]
) -> List[Sensor]:
    """Keep sensors whose location name suggests ``equipment_type``."""
    if equipment_type is None:
        return list(sensors)
    return [sensor for sensor in sensors if matches_equipment_type(sensor, equipment_type)]


def reference_lines(equipment_type: Optional[EquipmentType]) -> List[ReferenceLine]:
    if equipment_type is None:
        return []
    return list(_REFERENCE_LINES.get(equipment_type, ()))


def reconcile_selection(
    selected: Sequence[str],
    available: Sequence[Sensor],
    auto_select: int = 3,
) -> List[str]:
    """Drop selections that are no longer available, auto-selecting if none survive."""
    available_ids = [sensor.id for sensor in available]
    known = set(available_ids)
    valid: List[str] = []
    for sensor_id in selected:
        if sensor_id in known and sensor_id not in valid:
            valid.append(sensor_id)
    if valid:
        return valid
    return available_ids[: max(auto_select, 0)]
