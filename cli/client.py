from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the chart service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def _org_path(self, suffix: str) -> str:
        return f"/orgs/{self._config.org_id}/{suffix}"

    def upload_readings(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        try:
            with path.open("rb") as handle:
                response = self._client.post(
                    self._org_path("readings"),
                    files={"file": (path.name, handle, "text/csv")},
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_chart(
        self,
        hours: Optional[float] = None,
        sensors: Optional[List[str]] = None,
        equipment_type: Optional[str] = None,
        sampled: bool = True,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"sampled": str(sampled).lower()}
        if hours is not None:
            params["hours"] = hours
        if sensors:
            params["sensor"] = sensors
        if equipment_type:
            params["equipment_type"] = equipment_type
        return self._get(self._org_path("chart"), params)

    def get_compliance(self, hours: Optional[float] = None) -> Dict[str, Any]:
        params = {"hours": hours} if hours is not None else {}
        return self._get(self._org_path("compliance"), params)

    def export(
        self,
        kind: str = "readings",
        fmt: str = "csv",
        hours: Optional[float] = None,
    ) -> Tuple[str, bytes]:
        """Download an export; returns the server's suggested filename and the body."""
        params: Dict[str, Any] = {"kind": kind, "format": fmt}
        if hours is not None:
            params["hours"] = hours
        try:
            response = self._client.get(self._org_path("export"), params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        disposition = response.headers.get("content-disposition", "")
        _, _, filename = disposition.partition("filename=")
        return filename.strip('"') or f"{kind}.{fmt}", response.content

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
