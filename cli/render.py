from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def status_color(status: Any) -> str:
    return typer.colors.RED if status == "UNSAFE" else typer.colors.GREEN


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    if not payload:
        typer.echo("No readings received yet.")
        return

    echo_key_values(
        [
            ("captured_at", payload.get("captured_at")),
            ("pH", payload.get("pH")),
            ("tds", payload.get("tds")),
            ("temp", payload.get("temp")),
            ("turbidity", payload.get("turbidity")),
        ]
    )
    if payload.get("lat") is not None and payload.get("lng") is not None:
        typer.echo(f"location: {payload['lat']}, {payload['lng']}")
    status = payload.get("status")
    typer.secho(f"status: {status}", fg=status_color(status))


def render_ack(values: Dict[str, Any], ack: Dict[str, Any]) -> None:
    measured = " ".join(f"{key}={value}" for key, value in values.items() if value is not None)
    status = ack.get("status")
    pin = f" pin={ack['pin_id']}" if ack.get("pin_id") else ""
    typer.secho(f"Sent {measured} -> {status}{pin}", fg=status_color(status))
