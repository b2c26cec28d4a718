"""Ingestion orchestration and per-device live state."""

from __future__ import annotations

import asyncio
import hmac
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Awaitable, Dict, Optional, TypeVar

from app.schemas import ReadingPayload
from datastore.device_store import DeviceStore, build_default_store
from models.records import Pin, Reading
from notifications.ntfy import NtfyNotifier, build_alert_message
from services.broadcast import BroadcastHub, Subscriber
from services.classifier import RawValue, classify
from services.errors import DownstreamWriteFailure, Unauthorized
from services.history import HistoryCache
from services.pins import PinIndex, PinUpdate
from services.throttle import AlertThrottle
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeviceState:
    """Live state for one device scope."""

    device_id: str
    history: HistoryCache
    pins: PinIndex
    throttle: AlertThrottle
    hub: BroadcastHub
    lock: Lock = field(default_factory=Lock)
    # Store writes for the device are applied one ingest at a time.
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)


@dataclass(frozen=True)
class IngestOutcome:
    device_id: str
    reading: Reading
    pin_update: Optional[PinUpdate]
    alerted: bool


def history_message(device_id: str, readings: list[Reading]) -> dict[str, Any]:
    return {
        "type": "history",
        "device_id": device_id,
        "data": [ReadingPayload.from_reading(reading).to_json() for reading in readings],
    }


def reading_message(device_id: str, reading: Reading) -> dict[str, Any]:
    return {
        "type": "reading",
        "device_id": device_id,
        "data": ReadingPayload.from_reading(reading).to_json(),
    }


def reset_message(device_id: str) -> dict[str, Any]:
    return {"type": "reset", "device_id": device_id, "data": None}


class MonitorService:
    """Server state: per-device caches plus the downstream collaborators.

    Local mutations for a device happen under that device's lock; store writes
    and notifications run afterwards as background tasks bounded by
    ``downstream_timeout`` and never fail an ingest.
    """

    def __init__(
        self,
        store: DeviceStore,
        notifier: NtfyNotifier,
        *,
        alert_topic: str,
        default_device_id: str = "default",
        reset_password: Optional[str] = None,
        downstream_timeout: float = 10.0,
        broadcast_send_timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.alert_topic = alert_topic
        self.default_device_id = default_device_id
        self.downstream_timeout = downstream_timeout
        self.broadcast_send_timeout = broadcast_send_timeout
        self._reset_password = reset_password
        self._states: Dict[str, DeviceState] = {}
        self._states_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    def resolve_device(self, device_id: Optional[str]) -> str:
        candidate = (device_id or "").strip()
        return candidate or self.default_device_id

    async def ingest(
        self,
        device_id: Optional[str],
        ph: RawValue,
        tds: RawValue,
        temp: RawValue,
        turbidity: RawValue,
        lat: RawValue = None,
        lng: RawValue = None,
    ) -> IngestOutcome:
        reading = classify(ph, tds, temp, turbidity, lat=lat, lng=lng)
        device = self.resolve_device(device_id)
        state = await self._get_state(device)

        with state.lock:
            state.history.append(reading)
            pin_update = (
                state.pins.update(reading, now=reading.captured_at)
                if reading.has_location
                else None
            )
            alerted = state.throttle.maybe_fire(reading)
            state.hub.publish(reading_message(device, reading))

        logger.info(
            "Reading received",
            extra={
                "device_id": device,
                "status": reading.status.value,
                "pin_id": pin_update.pin.id if pin_update else None,
                "distance_m": pin_update.distance_m if pin_update else None,
            },
        )

        self._spawn(state, self._persist(state, reading, pin_update))
        if alerted:
            self._spawn(state, self._send_alert(device, reading))

        return IngestOutcome(
            device_id=device, reading=reading, pin_update=pin_update, alerted=alerted
        )

    async def snapshot(self, device_id: Optional[str]) -> Optional[Reading]:
        state = await self._get_state(self.resolve_device(device_id))
        return state.history.snapshot()

    async def history(self, device_id: Optional[str]) -> list[Reading]:
        state = await self._get_state(self.resolve_device(device_id))
        return state.history.dump()

    async def pins(self, device_id: Optional[str]) -> list[Pin]:
        state = await self._get_state(self.resolve_device(device_id))
        return state.pins.pins()

    async def subscribe(self, device_id: Optional[str], subscriber: Subscriber) -> str:
        device = self.resolve_device(device_id)
        state = await self._get_state(device)
        await state.hub.connect(
            subscriber, lambda: history_message(device, state.history.dump())
        )
        return device

    async def unsubscribe(self, device_id: str, subscriber: Subscriber) -> None:
        state = self._states.get(device_id)
        if state is not None:
            state.hub.disconnect(subscriber)

    async def reset(self, device_id: Optional[str], password: str) -> str:
        """Delete durable data, then clear local state, then notify viewers.

        Local state is only cleared once the store confirms the delete; a
        failed delete raises ``DownstreamWriteFailure`` and changes nothing.
        """
        device = self.resolve_device(device_id)
        if not self._check_password(password):
            logger.warning("Rejected reset request", extra={"device_id": device})
            raise Unauthorized("Invalid reset password.")

        state = await self._get_state(device)
        # Earlier writes for this device must land before the delete or they
        # would resurrect the record.
        pending = list(state.tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._call_downstream(
            "delete_device", device, asyncio.to_thread(self.store.delete_device, device)
        )

        with state.lock:
            state.history.clear()
            state.pins.clear()
            state.throttle.reset()
            delivery = state.hub.publish(reset_message(device))
        await delivery

        logger.info(
            "Device reset",
            extra={"device_id": device, "subscriber_count": state.hub.subscriber_count},
        )
        return device

    async def flush(self) -> None:
        """Wait for every scheduled downstream call, across all devices, to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for state in list(self._states.values()):
            await state.hub.close()
        await self.notifier.aclose()

    def _check_password(self, password: str) -> bool:
        if not self._reset_password:
            return False
        return hmac.compare_digest(password.encode("utf-8"), self._reset_password.encode("utf-8"))

    async def _get_state(self, device_id: str) -> DeviceState:
        state = self._states.get(device_id)
        if state is not None:
            return state
        async with self._states_lock:
            state = self._states.get(device_id)
            if state is None:
                state = DeviceState(
                    device_id=device_id,
                    history=HistoryCache(),
                    pins=PinIndex(await self._load_pins(device_id)),
                    throttle=AlertThrottle(),
                    hub=BroadcastHub(device_id, send_timeout=self.broadcast_send_timeout),
                )
                self._states[device_id] = state
            return state

    async def _load_pins(self, device_id: str) -> list[Pin]:
        try:
            return await self._call_downstream(
                "list_pins", device_id, asyncio.to_thread(self.store.list_pins, device_id)
            )
        except DownstreamWriteFailure as exc:
            logger.warning(
                "Starting with an empty pin index",
                extra={"device_id": device_id, "operation": exc.operation, "reason": exc.reason},
            )
            return []

    async def _persist(
        self, state: DeviceState, reading: Reading, pin_update: Optional[PinUpdate]
    ) -> None:
        device_id = state.device_id
        async with state.write_lock:
            calls = [
                self._call_downstream(
                    "write_latest",
                    device_id,
                    asyncio.to_thread(self.store.write_latest, device_id, reading),
                ),
                self._call_downstream(
                    "append_history",
                    device_id,
                    asyncio.to_thread(self.store.append_history, device_id, reading),
                ),
            ]
            if pin_update is not None:
                if pin_update.created:
                    operation, write = "create_pin", self.store.create_pin
                else:
                    operation, write = "update_pin", self.store.update_pin
                calls.append(
                    self._call_downstream(
                        operation, device_id, asyncio.to_thread(write, device_id, pin_update.pin)
                    )
                )

            results = await asyncio.gather(*calls, return_exceptions=True)
        for result in results:
            if isinstance(result, DownstreamWriteFailure):
                logger.warning(
                    "Store write failed",
                    extra={
                        "device_id": device_id,
                        "operation": result.operation,
                        "reason": result.reason,
                    },
                )
            elif isinstance(result, BaseException):
                raise result

    async def _send_alert(self, device_id: str, reading: Reading) -> None:
        logger.info(
            "Sending unsafe water alert",
            extra={"device_id": device_id, "topic": self.alert_topic},
        )
        try:
            await self._call_downstream(
                "send_alert",
                device_id,
                self.notifier.send(self.alert_topic, build_alert_message(device_id, reading)),
            )
        except DownstreamWriteFailure as exc:
            logger.warning(
                "Alert failed",
                extra={"device_id": device_id, "operation": exc.operation, "reason": exc.reason},
            )
            return
        logger.info("Alert sent", extra={"device_id": device_id, "topic": self.alert_topic})

    async def _call_downstream(self, operation: str, device_id: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.downstream_timeout)
        except asyncio.TimeoutError as exc:
            raise DownstreamWriteFailure(operation, device_id, "timed out") from exc
        except Exception as exc:
            raise DownstreamWriteFailure(operation, device_id, str(exc) or repr(exc)) from exc

    def _spawn(self, state: DeviceState, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        for tasks in (self._tasks, state.tasks):
            tasks.add(task)
            task.add_done_callback(tasks.discard)


def build_default_monitor(settings: Optional[Settings] = None) -> MonitorService:
    """Factory that wires the monitor with the configured collaborators."""
    settings = settings or get_settings()
    return MonitorService(
        store=build_default_store(),
        notifier=NtfyNotifier(settings.ntfy_base_url, timeout=settings.downstream_timeout),
        alert_topic=settings.ntfy_topic,
        default_device_id=settings.default_device_id,
        reset_password=settings.reset_password,
        downstream_timeout=settings.downstream_timeout,
        broadcast_send_timeout=settings.broadcast_send_timeout,
    )
