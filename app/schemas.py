"""Pydantic schemas for the HTTP API layer and the device store."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import Pin, Reading, ReadingStatus


class ReadingPayload(BaseModel):
    """Wire form of a classified reading."""

    model_config = ConfigDict(populate_by_name=True)

    captured_at: datetime
    ph: float = Field(..., alias="pH")
    tds: float
    temp: float
    turbidity: float
    status: ReadingStatus
    lat: Optional[float] = None
    lng: Optional[float] = None

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingPayload":
        return cls(
            captured_at=reading.captured_at,
            ph=reading.ph,
            tds=reading.tds,
            temp=reading.temp,
            turbidity=reading.turbidity,
            status=reading.status,
            lat=reading.lat,
            lng=reading.lng,
        )

    def to_reading(self) -> Reading:
        return Reading(
            captured_at=self.captured_at,
            ph=self.ph,
            tds=self.tds,
            temp=self.temp,
            turbidity=self.turbidity,
            status=self.status,
            lat=self.lat,
            lng=self.lng,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PinPayload(BaseModel):
    """Wire form of a map pin."""

    id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    last_reading: ReadingPayload
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_pin(cls, pin: Pin) -> "PinPayload":
        return cls(
            id=pin.id,
            lat=pin.lat,
            lng=pin.lng,
            last_reading=ReadingPayload.from_reading(pin.last_reading),
            created_at=pin.created_at,
            updated_at=pin.updated_at,
        )

    def to_pin(self) -> Pin:
        return Pin(
            id=self.id,
            lat=self.lat,
            lng=self.lng,
            last_reading=self.last_reading.to_reading(),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class DeviceRecord(BaseModel):
    """Everything the durable store keeps for one device."""

    device_id: str
    latest: Optional[ReadingPayload] = None
    history: List[ReadingPayload] = Field(default_factory=list)
    pins: Dict[str, PinPayload] = Field(default_factory=dict)


class IngestResponse(BaseModel):
    """Acknowledgment returned to the sending device."""

    detail: str = "Data received"
    device_id: str
    status: ReadingStatus
    pin_id: Optional[str] = Field(
        default=None, description="Pin the reading was attached to, when geolocated."
    )


class ResetRequest(BaseModel):
    password: str
    device_id: Optional[str] = None


class ResetResponse(BaseModel):
    detail: str = "Device data reset"
    device_id: str
