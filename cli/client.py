from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the monitoring service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_reading(
        self,
        values: Dict[str, Any],
        device_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {key: value for key, value in values.items() if value is not None}
        if device_id:
            params["device_id"] = device_id
        try:
            response = self._client.get("/update", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_snapshot(self, device_id: Optional[str] = None) -> Dict[str, Any]:
        params = {"device_id": device_id} if device_id else None
        try:
            response = self._client.get("/snapshot", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def reset(self, password: str, device_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            response = self._client.post(
                "/reset", json={"password": password, "device_id": device_id}
            )
            if response.status_code == 401:
                raise typer.BadParameter("Reset password was rejected.")
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
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
