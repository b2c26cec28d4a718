from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from models.records import Reading, ReadingStatus
from notifications.ntfy import NtfyNotifier, build_alert_message


def _reading() -> Reading:
    return Reading(
        captured_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ph=9.1,
        tds=640.0,
        temp=22.0,
        turbidity=3.0,
        status=ReadingStatus.UNSAFE,
        lat=14.5,
        lng=121.0,
    )


def test_alert_message_lists_measurements() -> None:
    message = build_alert_message("dev-7", _reading())

    assert message.startswith("DANGER: Water is UNSAFE!")
    assert "Device: dev-7" in message
    assert "pH: 9.1" in message
    assert "TDS: 640.0" in message
    assert "Location: 14.50000, 121.00000" in message


def test_send_posts_body_and_headers() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"id": "abc"})

    async def scenario() -> None:
        client = httpx.AsyncClient(
            base_url="https://ntfy.example", transport=httpx.MockTransport(handler)
        )
        notifier = NtfyNotifier("https://ntfy.example", client=client)
        await notifier.send("water-topic", "hello")
        await notifier.aclose()

    asyncio.run(scenario())

    assert len(captured) == 1
    request = captured[0]
    assert request.method == "POST"
    assert request.url == "https://ntfy.example/water-topic"
    assert request.content == b"hello"
    assert request.headers["Title"] == "Water Sensor Alert"
    assert request.headers["Priority"] == "high"
    assert request.headers["Tags"] == "warning,skull"


def test_send_raises_on_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async def scenario() -> None:
        client = httpx.AsyncClient(
            base_url="https://ntfy.example", transport=httpx.MockTransport(handler)
        )
        notifier = NtfyNotifier("https://ntfy.example", client=client)
        try:
            await notifier.send("water-topic", "hello")
        finally:
            await notifier.aclose()

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(scenario())
