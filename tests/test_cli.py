from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.uploaded_path: Path | None = None
        self.chart_calls: List[Dict[str, Any]] = []
        self.compliance_calls: List[Any] = []
        self.export_calls: List[Dict[str, Any]] = []
        self.chart_payload: Dict[str, Any] = {
            "points": [
                {"time": 1_704_110_400_000, "timestamp": 1_704_110_400_000, "sensor_a": 38.0},
                {"time": 1_704_110_700_000, "timestamp": 1_704_110_700_000, "sensor_b": -2.5},
            ],
            "series": [
                {"key": "sensor_a", "sensor_id": "a", "name": "Walk-in", "color": "#3B82F6"},
                {"key": "sensor_b", "sensor_id": "b", "name": "Freezer", "color": "#10B981"},
            ],
            "window": {"start": 1_704_106_800_000, "end": 1_704_110_400_000},
            "interval_minutes": 5,
            "reference_lines": [],
        }
        self.closed = False

    def upload_readings(self, path: Path) -> Dict[str, Any]:
        self.uploaded_path = path
        return {"accepted": 2, "errors": [{"row_number": 4, "reason": "unknown sensor"}]}

    def get_chart(self, **kwargs: Any) -> Dict[str, Any]:
        self.chart_calls.append(kwargs)
        return self.chart_payload

    def export(self, **kwargs: Any) -> tuple[str, bytes]:
        self.export_calls.append(kwargs)
        return "manual-temperature-logs-6h.csv", b"Location,Station\nLine,N/A\n"

    def get_compliance(self, hours=None) -> Dict[str, Any]:
        self.compliance_calls.append(hours)
        return {
            "overall_compliance": 87.5,
            "total_readings": 8,
            "total_violations": 1,
            "items": [
                {
                    "equipment": {"name": "Walk-in", "equipment_type": "fridge"},
                    "compliance_rate": 87.5,
                    "violations": 1,
                    "total_readings": 8,
                }
            ],
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_upload_command(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("sensor_id,observed_at,temperature\na,2024-01-01T00:00:00Z,1.0\n")

    result = runner.invoke(app, ["--org", "kitchen-7", "upload", str(csv_path)])

    assert result.exit_code == 0
    assert "Upload accepted. readings=2" in result.stdout
    assert "row 4: unknown sensor" in result.stdout
    assert stub.uploaded_path == csv_path
    assert stub.config.org_id == "kitchen-7"
    assert stub.closed is True


def test_chart_command_passes_selection(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["chart", "--hours", "1", "-s", "b", "-s", "a", "--raw"])

    assert result.exit_code == 0
    assert stub.chart_calls == [
        {"hours": 1.0, "sensors": ["b", "a"], "equipment_type": None, "sampled": False}
    ]
    assert "sensor_a: Walk-in #3B82F6" in result.stdout
    assert "2024-01-01 12:00  sensor_a=38.0" in result.stdout
    assert "2024-01-01 12:05  sensor_b=-2.5" in result.stdout


def test_chart_command_reports_no_data(stub: StubClient, runner: CliRunner) -> None:
    stub.chart_payload = {**stub.chart_payload, "points": []}

    result = runner.invoke(app, ["chart"])

    assert result.exit_code == 0
    assert "No data for the selected sensors" in result.stdout


def test_compliance_command(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["compliance", "--hours", "48"])

    assert result.exit_code == 0
    assert stub.compliance_calls == [48.0]
    assert "overall_compliance: 87.5%" in result.stdout
    assert "Walk-in (fridge): 87.5% 1 violations / 8 readings" in result.stdout


def test_export_command_writes_server_filename(stub: StubClient, runner: CliRunner) -> None:
    with runner.isolated_filesystem():
        result = runner.invoke(app, ["export", "--kind", "manual", "--hours", "6"])

        assert result.exit_code == 0
        assert Path("manual-temperature-logs-6h.csv").read_bytes() == b"Location,Station\nLine,N/A\n"

    assert stub.export_calls == [{"kind": "manual", "fmt": "csv", "hours": 6.0}]
    assert "Saved 26 bytes to manual-temperature-logs-6h.csv" in result.stdout


def test_export_command_honours_output_path(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    destination = tmp_path / "out.csv"

    result = runner.invoke(app, ["export", "--format", "json", "-O", str(destination)])

    assert result.exit_code == 0
    assert destination.exists()
    assert stub.export_calls == [{"kind": "readings", "fmt": "json", "hours": None}]


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://charts.local:9000/")
    monkeypatch.setenv("CLI_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("CLI_ORG_ID", " org-9 ")

    config = load_config()

    assert config == CLIConfig(base_url="http://charts.local:9000", timeout=30.0, org_id="org-9")


def test_api_client_surfaces_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/orgs/org-1/chart"
        assert request.url.params.get_list("sensor") == ["a", "b"]
        return httpx.Response(400, json={"detail": "Unknown equipment type 'smoker'"})

    client = ApiClient(CLIConfig(org_id="org-1"))
    client._client = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(typer.Exit) as excinfo:
            client.get_chart(sensors=["a", "b"], equipment_type="smoker")
    finally:
        client.close()

    assert excinfo.value.exit_code == 1


def test_api_client_export_returns_attachment_name() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["kind"] == "compliance"
        return httpx.Response(
            200,
            content=b"Equipment Name\n",
            headers={"Content-Disposition": 'attachment; filename="compliance-report-24h.csv"'},
        )

    client = ApiClient(CLIConfig(org_id="org-1"))
    client._client = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    try:
        filename, body = client.export(kind="compliance")
    finally:
        client.close()

    assert (filename, body) == ("compliance-report-24h.csv", b"Equipment Name\n")
