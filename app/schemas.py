"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.records import Equipment, Sensor, TemperatureLog
from services.equipment import EquipmentType


class SensorIn(BaseModel):
    """Sensor registration payload."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    location_name: Optional[str] = None
    active: bool = True

    def to_record(self) -> Sensor:
        return Sensor(
            id=self.id,
            name=self.name,
            location_name=self.location_name,
            active=self.active,
        )


class SensorOut(SensorIn):
    display_name: str

    @classmethod
    def from_record(cls, sensor: Sensor) -> "SensorOut":
        return cls(
            id=sensor.id,
            name=sensor.name,
            location_name=sensor.location_name,
            active=sensor.active,
            display_name=sensor.display_name,
        )


class EquipmentIn(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    equipment_type: EquipmentType
    location_name: Optional[str] = None
    sensor_id: Optional[str] = None

    def to_record(self) -> Equipment:
        return Equipment(
            id=self.id,
            name=self.name,
            equipment_type=self.equipment_type.value,
            location_name=self.location_name,
            sensor_id=self.sensor_id,
        )

    @classmethod
    def from_record(cls, item: Equipment) -> "EquipmentIn":
        return cls(
            id=item.id,
            name=item.name,
            equipment_type=EquipmentType(item.equipment_type),
            location_name=item.location_name,
            sensor_id=item.sensor_id,
        )


class LogStatus(str, Enum):
    normal = "normal"
    warning = "warning"
    critical = "critical"


class TemperatureLogIn(BaseModel):
    """A temperature check recorded by staff."""

    id: str = Field(..., min_length=1)
    location_name: str = Field(..., min_length=1)
    equipment_type: EquipmentType
    temperature: float = Field(..., allow_inf_nan=False)
    recorded_at: datetime
    status: LogStatus = LogStatus.normal
    station: Optional[str] = None
    recorded_by: Optional[str] = None
    sensor_id: Optional[str] = None
    notes: Optional[str] = None
    corrective_action: Optional[str] = None

    @field_validator("recorded_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_record(self) -> TemperatureLog:
        return TemperatureLog(
            id=self.id,
            location_name=self.location_name,
            equipment_type=self.equipment_type.value,
            temperature=self.temperature,
            recorded_at=self.recorded_at,
            status=self.status.value,
            station=self.station,
            recorded_by=self.recorded_by,
            sensor_id=self.sensor_id,
            notes=self.notes,
            corrective_action=self.corrective_action,
        )

    @classmethod
    def from_record(cls, log: TemperatureLog) -> "TemperatureLogIn":
        return cls(
            id=log.id,
            location_name=log.location_name,
            equipment_type=EquipmentType(log.equipment_type),
            temperature=log.temperature,
            recorded_at=log.recorded_at,
            status=LogStatus(log.status),
            station=log.station,
            recorded_by=log.recorded_by,
            sensor_id=log.sensor_id,
            notes=log.notes,
            corrective_action=log.corrective_action,
        )


class IngestErrorOut(BaseModel):
    """Details about a row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str


class IngestResponse(BaseModel):
    accepted: int = Field(..., ge=0)
    errors: List[IngestErrorOut] = Field(default_factory=list)


class LineSeriesOut(BaseModel):
    key: str
    sensor_id: str
    name: str
    color: str


class ReferenceLineOut(BaseModel):
    y: float
    stroke: str
    label: str


class WindowOut(BaseModel):
    start: int = Field(..., description="Window start in epoch milliseconds.")
    end: int = Field(..., description="Window end in epoch milliseconds.")


class ChartResponse(BaseModel):
    """Merged chart series for the selected sensors."""

    points: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="One entry per timestamp: time, timestamp and one sensor_<id> field per reporting sensor.",
    )
    series: List[LineSeriesOut] = Field(default_factory=list)
    window: WindowOut
    interval_minutes: Optional[int] = Field(
        default=None, description="Bucket width, or null when raw readings are charted."
    )
    reference_lines: List[ReferenceLineOut] = Field(default_factory=list)


class EquipmentComplianceOut(BaseModel):
    equipment: EquipmentIn
    total_readings: int = Field(..., ge=0)
    violations: int = Field(..., ge=0)
    compliance_rate: float
    latest_observed_at: Optional[datetime] = None
    latest_temperature: Optional[float] = None


class ComplianceResponse(BaseModel):
    overall_compliance: float
    total_readings: int = Field(..., ge=0)
    total_violations: int = Field(..., ge=0)
    manual_logs: int = Field(0, ge=0, description="Manual temperature logs recorded in the window.")
    window_start: datetime
    window_end: datetime
    items: List[EquipmentComplianceOut] = Field(default_factory=list)
