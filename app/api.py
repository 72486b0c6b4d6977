"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status

from app.schemas import (
    ChartResponse,
    ComplianceResponse,
    EquipmentComplianceOut,
    EquipmentIn,
    IngestErrorOut,
    IngestResponse,
    LineSeriesOut,
    ReferenceLineOut,
    SensorIn,
    SensorOut,
    TemperatureLogIn,
    WindowOut,
)
from datastore.readings import ReadingStore, build_default_store
from services.chart_session import ChartSession
from services.compliance import compliance_report
from services.equipment import filter_sensors, parse_equipment_type
from services.export import (
    MEDIA_TYPES,
    ExportFormat,
    ExportKind,
    compliance_rows,
    export_filename,
    manual_log_rows,
    reading_rows,
    render,
)
from services.ingest import IngestService
from services.series import TimeWindow
from settings import get_settings

router = APIRouter()


def get_store() -> ReadingStore:
    return build_default_store()


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _resolve_hours(hours: Optional[float]) -> float:
    return hours if hours is not None else get_settings().default_time_range_hours


@router.post(
    "/orgs/{org_id}/sensors",
    status_code=status.HTTP_201_CREATED,
    response_model=SensorOut,
    summary="Register or update a sensor.",
)
async def put_sensor(
    org_id: str,
    payload: SensorIn,
    store: ReadingStore = Depends(get_store),
) -> SensorOut:
    sensor = payload.to_record()
    store.put_sensor(org_id, sensor)
    return SensorOut.from_record(sensor)


@router.get(
    "/orgs/{org_id}/sensors",
    response_model=List[SensorOut],
    summary="List active sensors, optionally filtered by equipment type.",
)
async def list_sensors(
    org_id: str,
    equipment_type: Optional[str] = Query(None, description="fridge, cold_holding, freezer or hot_holding."),
    store: ReadingStore = Depends(get_store),
) -> List[SensorOut]:
    try:
        kind = parse_equipment_type(equipment_type)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    sensors = filter_sensors(store.fetch_sensors(org_id), kind)
    return [SensorOut.from_record(sensor) for sensor in sensors]


@router.post(
    "/orgs/{org_id}/equipment",
    status_code=status.HTTP_201_CREATED,
    response_model=EquipmentIn,
    summary="Register or update monitored equipment.",
)
async def put_equipment(
    org_id: str,
    payload: EquipmentIn,
    store: ReadingStore = Depends(get_store),
) -> EquipmentIn:
    try:
        store.put_equipment(org_id, payload.to_record())
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    return payload


@router.get(
    "/orgs/{org_id}/equipment",
    response_model=List[EquipmentIn],
    summary="List monitored equipment.",
)
async def list_equipment(
    org_id: str,
    store: ReadingStore = Depends(get_store),
) -> List[EquipmentIn]:
    return [EquipmentIn.from_record(item) for item in store.fetch_equipment(org_id)]


@router.post(
    "/orgs/{org_id}/temperature-logs",
    status_code=status.HTTP_201_CREATED,
    response_model=TemperatureLogIn,
    summary="Record a manual temperature check.",
)
async def add_temperature_log(
    org_id: str,
    payload: TemperatureLogIn,
    store: ReadingStore = Depends(get_store),
) -> TemperatureLogIn:
    try:
        store.add_temperature_log(org_id, payload.to_record())
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    return payload


@router.get(
    "/orgs/{org_id}/temperature-logs",
    response_model=List[TemperatureLogIn],
    summary="List manual temperature checks over a trailing time range.",
)
async def list_temperature_logs(
    org_id: str,
    hours: Optional[float] = Query(None, gt=0),
    store: ReadingStore = Depends(get_store),
) -> List[TemperatureLogIn]:
    try:
        window = TimeWindow.trailing(_resolve_hours(hours))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    logs = store.fetch_temperature_logs(org_id, window.start, window.end)
    return [TemperatureLogIn.from_record(log) for log in logs]


@router.post(
    "/orgs/{org_id}/readings",
    response_model=IngestResponse,
    summary="Upload a CSV of sensor readings.",
)
async def upload_readings(
    org_id: str,
    file: UploadFile = File(..., description="CSV with sensor_id, observed_at and temperature columns."),
    store: ReadingStore = Depends(get_store),
) -> IngestResponse:
    try:
        contents = await file.read()
        result = IngestService(store).ingest_csv(org_id, contents)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    finally:
        await file.close()
    return IngestResponse(
        accepted=result.accepted,
        errors=[IngestErrorOut(row_number=e.row_number, reason=e.reason) for e in result.errors],
    )


@router.get(
    "/orgs/{org_id}/chart",
    response_model=ChartResponse,
    summary="Chart series for the selected sensors over a trailing time range.",
)
async def get_chart(
    org_id: str,
    hours: Optional[float] = Query(None, gt=0, description="Trailing time range in hours."),
    sensor: List[str] = Query([], description="Selected sensor ids, in colour order."),
    equipment_type: Optional[str] = Query(None),
    sampled: bool = Query(True, description="Average readings into fixed-width buckets."),
    store: ReadingStore = Depends(get_store),
) -> ChartResponse:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    try:
        session = ChartSession(
            store,
            org_id,
            time_range_hours=_resolve_hours(hours),
            equipment_type=parse_equipment_type(equipment_type),
            auto_select=settings.auto_select_count,
        )
        session.set_selection(sensor)
        session.load(now=now)
        view = session.chart(sampled=sampled, now=now)
    except ValueError as exc:
        raise _bad_request(exc) from exc

    payload = view.series.as_dict()
    return ChartResponse(
        points=payload["points"],
        series=[LineSeriesOut(**line) for line in payload["series"]],
        window=WindowOut(**payload["window"]),
        interval_minutes=view.interval_minutes,
        reference_lines=[
            ReferenceLineOut(y=line.y, stroke=line.stroke, label=line.label)
            for line in view.reference_lines
        ],
    )


@router.get(
    "/orgs/{org_id}/compliance",
    response_model=ComplianceResponse,
    summary="HACCP compliance of each piece of equipment over a trailing time range.",
)
async def get_compliance(
    org_id: str,
    hours: Optional[float] = Query(None, gt=0),
    store: ReadingStore = Depends(get_store),
) -> ComplianceResponse:
    try:
        window = TimeWindow.trailing(_resolve_hours(hours))
    except ValueError as exc:
        raise _bad_request(exc) from exc
    readings = store.fetch_readings(org_id, window.start, window.end)
    logs = store.fetch_temperature_logs(org_id, window.start, window.end)
    report = compliance_report(store.fetch_equipment(org_id), readings, window, logs=logs)
    return ComplianceResponse(
        overall_compliance=report.overall_compliance,
        total_readings=report.total_readings,
        total_violations=report.total_violations,
        manual_logs=report.manual_logs,
        window_start=window.start,
        window_end=window.end,
        items=[
            EquipmentComplianceOut(
                equipment=EquipmentIn.from_record(item.equipment),
                total_readings=item.total_readings,
                violations=item.violations,
                compliance_rate=item.compliance_rate,
                latest_observed_at=item.latest_reading.observed_at if item.latest_reading else None,
                latest_temperature=item.latest_reading.temperature if item.latest_reading else None,
            )
            for item in report.items
        ],
    )


@router.get(
    "/orgs/{org_id}/export",
    summary="Download readings or compliance rows as CSV or JSON.",
    response_class=Response,
)
async def export_rows(
    org_id: str,
    kind: ExportKind = Query(ExportKind.readings),
    format: ExportFormat = Query(ExportFormat.csv),
    hours: Optional[float] = Query(None, gt=0, description="Trailing time range in hours."),
    store: ReadingStore = Depends(get_store),
) -> Response:
    range_hours = _resolve_hours(hours)
    try:
        window = TimeWindow.trailing(range_hours)
    except ValueError as exc:
        raise _bad_request(exc) from exc

    if kind is ExportKind.manual:
        rows = manual_log_rows(store.fetch_temperature_logs(org_id, window.start, window.end))
    else:
        sensors = {sensor.id: sensor for sensor in store.fetch_sensors(org_id, active_only=False)}
        equipment = store.fetch_equipment(org_id)
        readings = store.fetch_readings(org_id, window.start, window.end)
        if kind is ExportKind.readings:
            rows = reading_rows(readings, sensors, equipment)
        else:
            rows = compliance_rows(compliance_report(equipment, readings, window), sensors)

    filename = export_filename(kind, range_hours, format)
    return Response(
        content=render(rows, format),
        media_type=MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
