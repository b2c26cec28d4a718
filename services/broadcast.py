"""Fan-out of live messages to connected viewers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class _Channel:
    """Serializes sends to one subscriber so its messages stay in order."""

    def __init__(self, subscriber: Subscriber) -> None:
        self.subscriber = subscriber
        self.lock = asyncio.Lock()


class BroadcastHub:
    """Best-effort delivery of messages to every connected subscriber.

    Fan-out is a plain loop over subscribers. A subscriber whose send fails is
    dropped; one that exceeds ``send_timeout`` misses that message.
    """

    def __init__(self, device_id: str, send_timeout: Optional[float] = None) -> None:
        self.device_id = device_id
        self.send_timeout = send_timeout
        self._channels: Dict[int, _Channel] = {}
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._channels)

    async def connect(self, subscriber: Subscriber, catch_up: Callable[[], Any]) -> None:
        """Register ``subscriber`` and send it the catch-up message first.

        ``catch_up`` is evaluated right after registration, so any message
        published later is delivered after the catch-up and anything earlier
        is already part of it.
        """
        channel = _Channel(subscriber)
        async with channel.lock:
            self._channels[id(subscriber)] = channel
            message = catch_up()
            logger.info(
                "Subscriber connected",
                extra={"device_id": self.device_id, "subscriber_count": self.subscriber_count},
            )
            await self._send(channel, message)

    def disconnect(self, subscriber: Subscriber) -> None:
        if self._channels.pop(id(subscriber), None) is not None:
            logger.info(
                "Subscriber disconnected",
                extra={"device_id": self.device_id, "subscriber_count": self.subscriber_count},
            )

    def publish(self, message: Any) -> Awaitable[list[None]]:
        """Queue ``message`` for every current subscriber.

        Recipients are fixed when this is called. The returned awaitable
        completes once every delivery attempt has finished; callers that do
        not need to wait can ignore it.
        """
        tasks = []
        for channel in list(self._channels.values()):
            task = asyncio.create_task(self._deliver(channel, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._channels.clear()

    async def _deliver(self, channel: _Channel, message: Any) -> None:
        async with channel.lock:
            if id(channel.subscriber) not in self._channels:
                return
            await self._send(channel, message)

    async def _send(self, channel: _Channel, message: Any) -> None:
        try:
            await asyncio.wait_for(channel.subscriber.send_json(message), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Skipped message for slow subscriber",
                extra={"device_id": self.device_id, "reason": "send timeout"},
            )
        except Exception as exc:
            self._channels.pop(id(channel.subscriber), None)
            logger.debug(
                "Dropped subscriber after failed send",
                extra={"device_id": self.device_id, "reason": repr(exc)},
            )
