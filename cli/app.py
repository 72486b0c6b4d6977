from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_compliance, render_ingest


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the HACCP temperature chart service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
    org_id: Optional[str] = typer.Option(
        None,
        "--org",
        "-o",
        help="Organization id (defaults to CLI_ORG_ID env or 'default').",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout, org_id=org_id)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Upload a CSV of sensor readings."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} for {state.config.org_id} ...")
    payload = state.client.upload_readings(file)
    typer.secho(f"Upload accepted. readings={payload.get('accepted')}", fg=typer.colors.GREEN)
    typer.echo()
    render_ingest(payload)


@app.command("chart")
def chart_command(
    ctx: typer.Context,
    hours: Optional[float] = typer.Option(None, "--hours", help="Trailing time range in hours."),
    sensors: Optional[List[str]] = typer.Option(
        None, "--sensor", "-s", help="Sensor id to chart; repeat to select several, in colour order."
    ),
    equipment_type: Optional[str] = typer.Option(None, "--equipment-type", help="Filter sensors by equipment type."),
    raw: bool = typer.Option(False, "--raw", help="Chart raw readings instead of bucket averages."),
) -> None:
    """Print the chart series for the selected sensors."""
    state = _get_state(ctx)
    payload = state.client.get_chart(
        hours=hours,
        sensors=sensors or [],
        equipment_type=equipment_type,
        sampled=not raw,
    )
    render_chart(payload)


@app.command("compliance")
def compliance_command(
    ctx: typer.Context,
    hours: Optional[float] = typer.Option(None, "--hours", help="Trailing time range in hours."),
) -> None:
    """Print the HACCP compliance report."""
    state = _get_state(ctx)
    render_compliance(state.client.get_compliance(hours=hours))


@app.command("export")
def export_command(
    ctx: typer.Context,
    kind: str = typer.Option("readings", "--kind", help="readings, compliance or manual."),
    fmt: str = typer.Option("csv", "--format", help="csv or json."),
    hours: Optional[float] = typer.Option(None, "--hours", help="Trailing time range in hours."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-O", dir_okay=False, help="Destination file (defaults to the server's filename)."
    ),
) -> None:
    """Download a readings, compliance or manual-log export."""
    state = _get_state(ctx)
    filename, body = state.client.export(kind=kind, fmt=fmt, hours=hours)
    destination = output or Path(filename)
    destination.write_bytes(body)
    typer.secho(f"Saved {len(body)} bytes to {destination}", fg=typer.colors.GREEN)
