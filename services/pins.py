"""Greedy fixed-radius clustering of geolocated readings into map pins.

Each reading is matched against every existing pin of its device, so an update
costs O(pin count). Pin counts per device are small; a spatial index is the
first thing to add if that stops being true.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterable, Optional
from uuid import uuid4

from models.records import Pin, Reading

EARTH_RADIUS_M = 6_371_000.0
PROXIMITY_RADIUS_M = 25.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two coordinates."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True)
class PinUpdate:
    """Outcome of routing one reading through the index."""

    pin: Pin
    created: bool
    distance_m: Optional[float]


class PinIndex:
    """Pins for a single device, keyed by id in insertion order."""

    def __init__(
        self,
        pins: Iterable[Pin] = (),
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._pins: Dict[str, Pin] = {pin.id: replace(pin) for pin in pins}
        self._id_factory = id_factory
        self._lock = Lock()

    def update(self, reading: Reading, now: Optional[datetime] = None) -> PinUpdate:
        """Attach the reading to the nearest pin within range or start a new one."""
        if not reading.has_location:
            raise ValueError("Only geolocated readings can be pinned.")
        timestamp = now or datetime.now(timezone.utc)

        with self._lock:
            nearest, distance = self._nearest(reading.lat, reading.lng)  # type: ignore[arg-type]
            if nearest is not None and distance is not None and distance <= PROXIMITY_RADIUS_M:
                nearest.last_reading = reading
                nearest.updated_at = timestamp
                return PinUpdate(pin=replace(nearest), created=False, distance_m=distance)

            pin = Pin(
                id=self._id_factory(),
                lat=reading.lat,
                lng=reading.lng,
                last_reading=reading,
                created_at=timestamp,
                updated_at=timestamp,
            )
            self._pins[pin.id] = pin
            return PinUpdate(pin=replace(pin), created=True, distance_m=distance)

    def _nearest(self, lat: float, lng: float) -> tuple[Optional[Pin], Optional[float]]:
        best: Optional[Pin] = None
        best_distance: Optional[float] = None
        for pin in self._pins.values():
            if pin.lat is None or pin.lng is None:
                continue
            distance = haversine_m(lat, lng, pin.lat, pin.lng)
            # Strict comparison: the first pin found wins ties.
            if best_distance is None or distance < best_distance:
                best, best_distance = pin, distance
        return best, best_distance

    def get(self, pin_id: str) -> Optional[Pin]:
        with self._lock:
            pin = self._pins.get(pin_id)
            return replace(pin) if pin is not None else None

    def pins(self) -> list[Pin]:
        with self._lock:
            return [replace(pin) for pin in self._pins.values()]

    def clear(self) -> None:
        with self._lock:
            self._pins.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pins)
