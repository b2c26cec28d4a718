"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ReadingStatus(str, Enum):
    """Safety classification of a single sample."""

    SAFE = "SAFE"
    UNSAFE = "UNSAFE"


@dataclass(frozen=True, slots=True)
class Reading:
    """A classified sensor sample. Never mutated after creation."""

    captured_at: datetime
    ph: float
    tds: float
    temp: float
    turbidity: float
    status: ReadingStatus
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    @property
    def is_unsafe(self) -> bool:
        return self.status is ReadingStatus.UNSAFE


@dataclass(slots=True)
class Pin:
    """A map location holding the latest reading observed near it.

    Coordinates are optional only for pins loaded from older store records;
    pins created by the index always carry them.
    """

    id: str
    lat: Optional[float]
    lng: Optional[float]
    last_reading: Reading
    created_at: datetime
    updated_at: datetime
