"""Push notifications delivered through an ntfy server."""

from __future__ import annotations

from typing import Iterable, Optional

import httpx

from models.records import Reading

ALERT_TITLE = "Water Sensor Alert"
ALERT_TAGS = ("warning", "skull")
ALERT_PRIORITY = "high"


def build_alert_message(device_id: str, reading: Reading) -> str:
    lines = [
        "DANGER: Water is UNSAFE!",
        "",
        f"Device: {device_id}",
        f"pH: {reading.ph}",
        f"TDS: {reading.tds}",
        f"Temp: {reading.temp}",
        f"Turbidity: {reading.turbidity}",
    ]
    if reading.has_location:
        lines.append(f"Location: {reading.lat:.5f}, {reading.lng:.5f}")
    return "\n".join(lines)


class NtfyNotifier:
    """Minimal async client for publishing messages to ntfy topics."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def send(
        self,
        topic: str,
        body: str,
        *,
        title: str = ALERT_TITLE,
        priority: str = ALERT_PRIORITY,
        tags: Iterable[str] = ALERT_TAGS,
    ) -> None:
        response = await self._client.post(
            f"/{topic}",
            content=body.encode("utf-8"),
            headers={
                "Title": title,
                "Priority": priority,
                "Tags": ",".join(tags),
            },
        )
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()
