"""HTTP and WebSocket route definitions for the service."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, status
from fastapi.responses import PlainTextResponse

from app.schemas import IngestResponse, PinPayload, ReadingPayload, ResetRequest, ResetResponse
from services.errors import DownstreamWriteFailure, InvalidReading, Unauthorized
from services.monitor import MonitorService


router = APIRouter()


def get_monitor(request: Request) -> MonitorService:
    return request.app.state.monitor


@router.get(
    "/update",
    response_model=IngestResponse,
    summary="Ingest one sensor sample from a field device.",
)
async def ingest_reading(
    device_id: Optional[str] = Query(None, description="Device scope; defaults to the configured device."),
    ph: Optional[str] = Query(None, alias="pH"),
    tds: Optional[str] = Query(None),
    temp: Optional[str] = Query(None),
    turbidity: Optional[str] = Query(None),
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    monitor: MonitorService = Depends(get_monitor),
) -> IngestResponse:
    try:
        outcome = await monitor.ingest(
            device_id, ph=ph, tds=tds, temp=temp, turbidity=turbidity, lat=lat, lng=lng
        )
    except InvalidReading as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return IngestResponse(
        device_id=outcome.device_id,
        status=outcome.reading.status,
        pin_id=outcome.pin_update.pin.id if outcome.pin_update else None,
    )


@router.get(
    "/snapshot",
    summary="Latest reading for a device, or an empty object.",
)
async def get_snapshot(
    device_id: Optional[str] = Query(None),
    monitor: MonitorService = Depends(get_monitor),
) -> dict[str, Any]:
    reading = await monitor.snapshot(device_id)
    if reading is None:
        return {}
    return ReadingPayload.from_reading(reading).to_json()


@router.get(
    "/history",
    response_model=list[ReadingPayload],
    summary="Cached recent readings for a device, oldest first.",
)
async def get_history(
    device_id: Optional[str] = Query(None),
    monitor: MonitorService = Depends(get_monitor),
) -> list[ReadingPayload]:
    return [ReadingPayload.from_reading(reading) for reading in await monitor.history(device_id)]


@router.get(
    "/pins",
    response_model=list[PinPayload],
    summary="Map pins for a device.",
)
async def get_pins(
    device_id: Optional[str] = Query(None),
    monitor: MonitorService = Depends(get_monitor),
) -> list[PinPayload]:
    return [PinPayload.from_pin(pin) for pin in await monitor.pins(device_id)]


@router.post(
    "/reset",
    response_model=ResetResponse,
    summary="Delete stored data for a device and notify connected viewers.",
)
async def reset_device(
    payload: ResetRequest,
    monitor: MonitorService = Depends(get_monitor),
) -> ResetResponse:
    try:
        device_id = await monitor.reset(payload.device_id, payload.password)
    except Unauthorized as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except DownstreamWriteFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return ResetResponse(device_id=device_id)


@router.websocket("/ws")
async def subscribe(websocket: WebSocket, device_id: Optional[str] = None) -> None:
    monitor: MonitorService = websocket.app.state.monitor
    await websocket.accept()
    device = await monitor.subscribe(device_id, websocket)
    try:
        while True:
            # Viewers have nothing to say; text and binary frames are ignored.
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        await monitor.unsubscribe(device, websocket)


@router.get(
    "/ping",
    summary="Keep-alive check.",
    response_class=PlainTextResponse,
)
async def ping() -> str:
    return "ok"


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
