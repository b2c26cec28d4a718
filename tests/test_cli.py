from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app, random_values


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.sent: List[tuple[Dict[str, Any], Optional[str]]] = []
        self.resets: List[tuple[str, Optional[str]]] = []
        self.snapshot_payload: Dict[str, Any] = {
            "captured_at": "2024-01-01T00:00:00Z",
            "pH": 9.2,
            "tds": 120.0,
            "temp": 22.0,
            "turbidity": 1.5,
            "status": "UNSAFE",
            "lat": None,
            "lng": None,
        }
        self.closed = False

    def send_reading(self, values: Dict[str, Any], device_id: Optional[str] = None) -> Dict[str, Any]:
        self.sent.append((values, device_id))
        return {"detail": "Data received", "device_id": device_id or "default", "status": "SAFE", "pin_id": None}

    def get_snapshot(self, device_id: Optional[str] = None) -> Dict[str, Any]:
        return self.snapshot_payload

    def reset(self, password: str, device_id: Optional[str] = None) -> Dict[str, Any]:
        self.resets.append((password, device_id))
        return {"detail": "Device data reset", "device_id": device_id or "default"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    client = StubClient(config=None)

    def factory(config):
        client.config = config
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    monkeypatch.setattr("cli.app.time.sleep", lambda _seconds: None)
    return client


def test_send_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(
        app,
        ["send", "--ph", "7.0", "--tds", "100", "--temp", "20", "--turbidity", "1", "-d", "tank"],
    )

    assert result.exit_code == 0
    assert "SAFE" in result.stdout
    values, device_id = stub.sent[0]
    assert values["pH"] == 7.0
    assert values["lat"] is None
    assert device_id == "tank"
    assert stub.closed is True


def test_simulate_sends_requested_count(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(
        app,
        ["simulate", "--count", "3", "--interval", "0.1", "--seed", "7", "--lat", "1.0", "--lng", "1.0"],
    )

    assert result.exit_code == 0
    assert len(stub.sent) == 3
    for values, _ in stub.sent:
        assert 4.5 <= values["pH"] <= 9.5
        assert abs(values["lat"] - 1.0) <= 0.00021
    assert stub.closed is True


def test_snapshot_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 0
    assert "Latest Reading" in result.stdout
    assert "pH: 9.2" in result.stdout
    assert "status: UNSAFE" in result.stdout


def test_snapshot_command_empty(runner: CliRunner, stub: StubClient) -> None:
    stub.snapshot_payload = {}

    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 0
    assert "No readings received yet." in result.stdout


def test_reset_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["reset", "--password", "pw", "--device", "tank"])

    assert result.exit_code == 0
    assert stub.resets == [("pw", "tank")]
    assert "Reset complete for device tank." in result.stdout


def test_base_url_option_reaches_client(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://sensor-hub:9000/", "snapshot"])

    assert result.exit_code == 0
    assert stub.config.base_url == "http://sensor-hub:9000"


def test_random_values_without_location() -> None:
    values = random_values(random.Random(1))

    assert set(values) == {"pH", "tds", "temp", "turbidity"}
    assert 0 <= values["tds"] < 1000
    assert 25 <= values["temp"] <= 45
