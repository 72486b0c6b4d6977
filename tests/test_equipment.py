from __future__ import annotations

import pytest

from models.records import Sensor
from services.equipment import (
    EquipmentType,
    filter_sensors,
    parse_equipment_type,
    reconcile_selection,
    reference_lines,
)

SENSORS = [
    Sensor(id="s1", name="Walk-in", location_name="Walk-in Cooler"),
    Sensor(id="s2", name="Reach-in", location_name="Line Fridge"),
    Sensor(id="s3", name="Deep", location_name="Chest Freezer"),
    Sensor(id="s4", name="Pass", location_name="Hot Well"),
    Sensor(id="s5", name="Drawer", location_name="Warming Drawer"),
    Sensor(id="s6", name="Loose", location_name=None),
]


@pytest.mark.parametrize(
    ("equipment_type", "expected"),
    [
        (EquipmentType.fridge, ["s1", "s2"]),
        (EquipmentType.cold_holding, ["s1", "s2"]),
        (EquipmentType.freezer, ["s3"]),
        (EquipmentType.hot_holding, ["s4", "s5"]),
        (None, ["s1", "s2", "s3", "s4", "s5", "s6"]),
    ],
)
def test_filter_sensors_by_location_keywords(equipment_type, expected) -> None:
    assert [sensor.id for sensor in filter_sensors(SENSORS, equipment_type)] == expected


def test_parse_equipment_type() -> None:
    assert parse_equipment_type(None) is None
    assert parse_equipment_type("  ") is None
    assert parse_equipment_type(" Freezer ") is EquipmentType.freezer
    with pytest.raises(ValueError, match="Unknown equipment type"):
        parse_equipment_type("smoker")


def test_reference_lines_per_equipment_type() -> None:
    assert [line.y for line in reference_lines(EquipmentType.fridge)] == [41]
    assert [line.label for line in reference_lines(EquipmentType.hot_holding)] == ["135°F Minimum"]
    assert reference_lines(EquipmentType.cold_holding) == []
    assert reference_lines(None) == []


def test_reconcile_keeps_valid_selection_in_order() -> None:
    assert reconcile_selection(["s3", "gone", "s1", "s3"], SENSORS) == ["s3", "s1"]


def test_reconcile_auto_selects_when_nothing_valid() -> None:
    assert reconcile_selection([], SENSORS) == ["s1", "s2", "s3"]
    assert reconcile_selection(["gone"], SENSORS, auto_select=1) == ["s1"]
    assert reconcile_selection([], []) == []
