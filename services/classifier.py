"""Turn raw sensor fields into classified readings."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Union

from models.records import Reading, ReadingStatus
from services.errors import InvalidReading

logger = logging.getLogger(__name__)

RawValue = Union[str, float, int, None]

PH_MIN = 6.5
PH_MAX = 8.5
TDS_MAX = 500.0
TEMP_MAX = 35.0
TURBIDITY_MAX = 10.0


def _parse_number(raw: RawValue) -> float:
    if raw is None:
        raise ValueError("missing")
    if isinstance(raw, str):
        candidate = raw.strip()
        if not candidate:
            raise ValueError("missing")
    else:
        candidate = raw
    try:
        value = float(candidate)
    except (TypeError, ValueError) as exc:
        raise ValueError("not a number") from exc
    if not math.isfinite(value):
        raise ValueError("not a finite number")
    return value


def _parse_mandatory(field: str, raw: RawValue) -> float:
    try:
        return _parse_number(raw)
    except ValueError as exc:
        raise InvalidReading(field, str(exc)) from exc


def _parse_location(lat: RawValue, lng: RawValue) -> tuple[Optional[float], Optional[float]]:
    if lat is None and lng is None:
        return None, None
    try:
        lat_value = _parse_number(lat)
        lng_value = _parse_number(lng)
    except ValueError as exc:
        logger.warning(
            "Dropping coordinates from reading",
            extra={"field": "lat/lng", "reason": str(exc)},
        )
        return None, None
    if not (-90.0 <= lat_value <= 90.0 and -180.0 <= lng_value <= 180.0):
        logger.warning(
            "Dropping coordinates from reading",
            extra={"field": "lat/lng", "reason": "out of range"},
        )
        return None, None
    return lat_value, lng_value


def evaluate_status(ph: float, tds: float, temp: float, turbidity: float) -> ReadingStatus:
    if (
        ph < PH_MIN
        or ph > PH_MAX
        or tds > TDS_MAX
        or temp > TEMP_MAX
        or turbidity > TURBIDITY_MAX
    ):
        return ReadingStatus.UNSAFE
    return ReadingStatus.SAFE


def classify(
    ph: RawValue,
    tds: RawValue,
    temp: RawValue,
    turbidity: RawValue,
    lat: RawValue = None,
    lng: RawValue = None,
    now: Optional[datetime] = None,
) -> Reading:
    """Validate raw fields and build an immutable, status-tagged reading.

    Raises ``InvalidReading`` for the first mandatory field that is missing,
    non-numeric or non-finite. Coordinates are only kept when both parse.
    """
    ph_value = _parse_mandatory("pH", ph)
    tds_value = _parse_mandatory("tds", tds)
    temp_value = _parse_mandatory("temp", temp)
    turbidity_value = _parse_mandatory("turbidity", turbidity)
    lat_value, lng_value = _parse_location(lat, lng)

    return Reading(
        captured_at=now or datetime.now(timezone.utc),
        ph=ph_value,
        tds=tds_value,
        temp=temp_value,
        turbidity=turbidity_value,
        status=evaluate_status(ph_value, tds_value, temp_value, turbidity_value),
        lat=lat_value,
        lng=lng_value,
    )
