from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_ms(value: Any) -> str:
    if not isinstance(value, (int, float)):
        return str(value)
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def render_ingest(payload: Dict[str, Any]) -> None:
    echo_heading("Ingest Result")
    echo_key_values([("accepted", payload.get("accepted"))])
    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - row {error.get('row_number')}: {error.get('reason')}")
    else:
        typer.echo("No errors recorded.")


def render_chart(payload: Dict[str, Any]) -> None:
    window = payload.get("window") or {}
    echo_heading("Temperature Chart")
    echo_key_values(
        [
            ("window", f"{_format_ms(window.get('start'))} .. {_format_ms(window.get('end'))}"),
            ("interval_minutes", payload.get("interval_minutes") or "raw"),
        ]
    )

    series = payload.get("series") or []
    typer.echo()
    echo_heading("Series")
    if not series:
        typer.echo("No sensors selected.")
    for line in series:
        typer.echo(f"  - {line.get('key')}: {line.get('name')} {line.get('color')}")

    points = payload.get("points") or []
    typer.echo()
    echo_heading("Points")
    if not points:
        typer.echo("No data for the selected sensors in this range.")
        return
    keys = [line.get("key") for line in series]
    for point in points:
        values = " ".join(
            f"{key}={point[key]:.1f}" for key in keys if isinstance(point.get(key), (int, float))
        )
        typer.echo(f"  {_format_ms(point.get('time'))}  {values}")


def render_compliance(payload: Dict[str, Any]) -> None:
    echo_heading("Compliance")
    echo_key_values(
        [
            ("overall_compliance", f"{payload.get('overall_compliance', 0.0):.1f}%"),
            ("total_readings", payload.get("total_readings")),
            ("total_violations", payload.get("total_violations")),
        ]
    )
    items = payload.get("items") or []
    typer.echo()
    echo_heading("Equipment")
    if not items:
        typer.echo("No equipment configured for compliance monitoring.")
        return
    for item in items:
        equipment = item.get("equipment") or {}
        rate = item.get("compliance_rate", 0.0)
        color = typer.colors.GREEN if rate >= 95 else typer.colors.YELLOW if rate >= 85 else typer.colors.RED
        typer.secho(
            f"  - {equipment.get('name')} ({equipment.get('equipment_type')}): {rate:.1f}% "
            f"{item.get('violations')} violations / {item.get('total_readings')} readings",
            fg=color,
        )
