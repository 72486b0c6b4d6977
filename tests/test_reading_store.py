"""Unit tests for the in-process reading store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from models.records import Equipment, Reading, Sensor, TemperatureLog
from datastore.readings import ReadingStore

BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _seed(store: ReadingStore, org_id: str = "org-1") -> None:
    store.put_sensor(org_id, Sensor(id="s2", name="Walk-in", location_name="Walk-in Cooler"))
    store.put_sensor(org_id, Sensor(id="s1", name="Freezer", location_name="Chest Freezer"))
    store.put_sensor(org_id, Sensor(id="s3", name="Old", active=False))


def test_fetch_sensors_orders_by_name_and_skips_inactive() -> None:
    store = ReadingStore()
    _seed(store)

    assert [sensor.id for sensor in store.fetch_sensors("org-1")] == ["s1", "s2"]
    assert [sensor.id for sensor in store.fetch_sensors("org-1", active_only=False)] == ["s1", "s3", "s2"]
    assert store.fetch_sensors("other-org") == []


def test_fetch_readings_is_inclusive_and_sorted() -> None:
    store = ReadingStore()
    _seed(store)
    store.add_readings(
        "org-1",
        [
            Reading(sensor_id="s2", observed_at=BASE + timedelta(minutes=10), temperature=40.0),
            Reading(sensor_id="s1", observed_at=BASE, temperature=-3.0),
            Reading(sensor_id="s2", observed_at=BASE + timedelta(minutes=20), temperature=None),
            Reading(sensor_id="s1", observed_at=BASE - timedelta(minutes=1), temperature=-4.0),
        ],
    )

    readings = store.fetch_readings("org-1", BASE, BASE + timedelta(minutes=20))

    assert [(r.sensor_id, r.temperature) for r in readings] == [
        ("s1", -3.0),
        ("s2", 40.0),
        ("s2", None),
    ]
    only_s1 = store.fetch_readings("org-1", BASE - timedelta(hours=1), BASE, sensor_ids=["s1"])
    assert [r.temperature for r in only_s1] == [-4.0, -3.0]


def test_fetch_readings_applies_limit() -> None:
    store = ReadingStore(max_readings=2)
    _seed(store)
    store.add_readings(
        "org-1",
        [Reading(sensor_id="s1", observed_at=BASE + timedelta(minutes=m), temperature=float(m)) for m in range(5)],
    )

    readings = store.fetch_readings("org-1", BASE, BASE + timedelta(hours=1))

    assert [r.temperature for r in readings] == [0.0, 1.0]
    assert len(store.fetch_readings("org-1", BASE, BASE + timedelta(hours=1), limit=4)) == 4


def test_add_readings_rejects_unknown_sensor_without_partial_write() -> None:
    store = ReadingStore()
    _seed(store)

    with pytest.raises(KeyError, match="ghost"):
        store.add_readings(
            "org-1",
            [
                Reading(sensor_id="s1", observed_at=BASE, temperature=1.0),
                Reading(sensor_id="ghost", observed_at=BASE, temperature=2.0),
            ],
        )

    assert store.fetch_readings("org-1", BASE, BASE) == []


def test_put_equipment_requires_registered_sensor() -> None:
    store = ReadingStore()
    _seed(store)

    store.put_equipment("org-1", Equipment(id="e1", name="Walk-in", equipment_type="fridge", sensor_id="s2"))
    with pytest.raises(KeyError):
        store.put_equipment("org-1", Equipment(id="e2", name="X", equipment_type="fridge", sensor_id="nope"))

    assert [item.id for item in store.fetch_equipment("org-1")] == ["e1"]


def test_get_sensor_missing_raises_key_error() -> None:
    store = ReadingStore()

    with pytest.raises(KeyError, match="missing"):
        store.get_sensor("org-1", "missing")


def test_store_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(persistence_path=path)
    _seed(store)
    store.put_equipment("org-1", Equipment(id="e1", name="Walk-in", equipment_type="fridge", sensor_id="s2"))
    store.add_readings(
        "org-1",
        [
            Reading(sensor_id="s2", observed_at=BASE + timedelta(minutes=5), temperature=39.5, humidity=58.0),
            Reading(sensor_id="s2", observed_at=BASE, temperature=None),
        ],
    )
    store.add_temperature_log(
        "org-1",
        TemperatureLog(
            id="l1",
            location_name="Walk-in Cooler",
            equipment_type="fridge",
            temperature=40.0,
            recorded_at=BASE,
            recorded_by="Sam",
            sensor_id="s2",
        ),
    )

    payload = json.loads(path.read_text())
    assert len(payload["org-1"]["readings"]) == 2

    reloaded = ReadingStore(persistence_path=path)
    assert reloaded.get_sensor("org-1", "s2") == store.get_sensor("org-1", "s2")
    assert reloaded.fetch_equipment("org-1") == store.fetch_equipment("org-1")
    assert reloaded.fetch_readings("org-1", BASE, BASE + timedelta(hours=1)) == store.fetch_readings(
        "org-1", BASE, BASE + timedelta(hours=1)
    )
    assert reloaded.fetch_readings("org-1", BASE, BASE + timedelta(hours=1))[1].humidity == 58.0
    assert reloaded.fetch_temperature_logs("org-1", BASE, BASE) == store.fetch_temperature_logs("org-1", BASE, BASE)


def test_unreadable_store_file_is_ignored(tmp_path) -> None:
    path = tmp_path / "readings.json"
    path.write_text("{not json")

    store = ReadingStore(persistence_path=path)

    assert store.fetch_sensors("org-1") == []


def test_fetch_readings_slices_on_exact_bounds() -> None:
    store = ReadingStore()
    _seed(store)
    stamps = [BASE + timedelta(minutes=m) for m in (0, 5, 5, 10, 15)]
    store.add_readings(
        "org-1",
        [Reading(sensor_id="s1", observed_at=when, temperature=float(i)) for i, when in enumerate(stamps)],
    )

    readings = store.fetch_readings("org-1", stamps[1], stamps[3])

    assert [r.temperature for r in readings] == [1.0, 2.0, 3.0]
    assert store.fetch_readings("org-1", BASE + timedelta(minutes=1), BASE + timedelta(minutes=4)) == []
    assert store.fetch_readings("org-1", BASE + timedelta(hours=1), BASE + timedelta(hours=2)) == []


def test_temperature_logs_are_time_ordered_and_replaced_by_id() -> None:
    store = ReadingStore()
    _seed(store)

    def log(log_id: str, minutes: int, temperature: float) -> TemperatureLog:
        return TemperatureLog(
            id=log_id,
            location_name="Line",
            equipment_type="hot_holding",
            temperature=temperature,
            recorded_at=BASE + timedelta(minutes=minutes),
        )

    store.add_temperature_log("org-1", log("b", 30, 140.0))
    store.add_temperature_log("org-1", log("a", 10, 120.0))
    store.add_temperature_log("org-1", log("a", 20, 150.0))

    logs = store.fetch_temperature_logs("org-1", BASE, BASE + timedelta(hours=1))

    assert [(item.id, item.temperature) for item in logs] == [("a", 150.0), ("b", 140.0)]
    assert store.fetch_temperature_logs("org-1", BASE, BASE + timedelta(minutes=25)) == logs[:1]
    assert store.fetch_temperature_logs("other-org", BASE, BASE + timedelta(hours=1)) == []


def test_temperature_log_requires_registered_sensor() -> None:
    store = ReadingStore()
    _seed(store)

    with pytest.raises(KeyError, match="ghost"):
        store.add_temperature_log(
            "org-1",
            TemperatureLog(
                id="l1",
                location_name="Line",
                equipment_type="fridge",
                temperature=38.0,
                recorded_at=BASE,
                sensor_id="ghost",
            ),
        )
