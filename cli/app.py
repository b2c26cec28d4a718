from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_ack, render_reading

# Roughly 20 m in degrees of latitude.
_LOCATION_JITTER_DEG = 0.0002


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the water quality monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def random_values(
    rng: random.Random,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
) -> Dict[str, Any]:
    """Mix of safe and unsafe samples, optionally scattered around a location."""
    values: Dict[str, Any] = {
        "pH": round(rng.uniform(4.5, 9.5), 2),
        "tds": rng.randrange(0, 1000),
        "temp": round(rng.uniform(25, 45), 2),
        "turbidity": round(rng.uniform(0, 20), 2),
    }
    if lat is not None and lng is not None:
        values["lat"] = round(lat + rng.uniform(-_LOCATION_JITTER_DEG, _LOCATION_JITTER_DEG), 6)
        values["lng"] = round(lng + rng.uniform(-_LOCATION_JITTER_DEG, _LOCATION_JITTER_DEG), 6)
    return values


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    ph: float = typer.Option(..., "--ph", help="pH value."),
    tds: float = typer.Option(..., "--tds", help="Total dissolved solids (ppm)."),
    temp: float = typer.Option(..., "--temp", help="Water temperature (C)."),
    turbidity: float = typer.Option(..., "--turbidity", help="Turbidity (NTU)."),
    lat: Optional[float] = typer.Option(None, "--lat"),
    lng: Optional[float] = typer.Option(None, "--lng"),
    device_id: Optional[str] = typer.Option(None, "--device", "-d"),
) -> None:
    """Send a single reading."""
    state = _get_state(ctx)
    values = {"pH": ph, "tds": tds, "temp": temp, "turbidity": turbidity, "lat": lat, "lng": lng}
    ack = state.client.send_reading(values, device_id=device_id)
    render_ack(values, ack)


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    count: Optional[int] = typer.Option(
        None, "--count", "-n", min=1, help="Number of readings to send (default: forever)."
    ),
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Seconds between readings."
    ),
    lat: Optional[float] = typer.Option(None, "--lat", help="Base latitude to scatter readings around."),
    lng: Optional[float] = typer.Option(None, "--lng", help="Base longitude to scatter readings around."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for repeatable runs."),
    device_id: Optional[str] = typer.Option(None, "--device", "-d"),
) -> None:
    """Act as a fake field device sending random readings."""
    state = _get_state(ctx)
    rng = random.Random(seed)
    delay = interval if interval is not None else state.config.send_interval
    typer.echo(f"Sending readings to {state.config.base_url} every {delay}s ...")

    sent = 0
    while count is None or sent < count:
        if sent:
            time.sleep(delay)
        values = random_values(rng, lat, lng)
        try:
            ack = state.client.send_reading(values, device_id=device_id)
        except httpx.TransportError as exc:
            typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        else:
            render_ack(values, ack)
        sent += 1


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    device_id: Optional[str] = typer.Option(None, "--device", "-d"),
) -> None:
    """Show the latest reading for a device."""
    state = _get_state(ctx)
    render_reading(state.client.get_snapshot(device_id))


@app.command("reset")
def reset_command(
    ctx: typer.Context,
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    device_id: Optional[str] = typer.Option(None, "--device", "-d"),
) -> None:
    """Delete all stored data for a device."""
    state = _get_state(ctx)
    payload = state.client.reset(password, device_id=device_id)
    typer.secho(f"Reset complete for device {payload.get('device_id')}.", fg=typer.colors.GREEN)
