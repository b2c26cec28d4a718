from __future__ import annotations

from datetime import datetime, timedelta, timezone

from models.records import Reading, ReadingStatus
from services.throttle import AlertThrottle

_BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _reading(seconds: int, status: ReadingStatus = ReadingStatus.UNSAFE) -> Reading:
    return Reading(
        captured_at=_BASE + timedelta(seconds=seconds),
        ph=9.0 if status is ReadingStatus.UNSAFE else 7.0,
        tds=100.0,
        temp=20.0,
        turbidity=1.0,
        status=status,
    )


def test_unsafe_burst_fires_once_per_cooldown() -> None:
    throttle = AlertThrottle()

    assert throttle.maybe_fire(_reading(0)) is True
    assert throttle.maybe_fire(_reading(10)) is False
    assert throttle.maybe_fire(_reading(130)) is True
    assert throttle.last_alert_at == _BASE + timedelta(seconds=130)


def test_exactly_cooldown_later_is_still_suppressed() -> None:
    throttle = AlertThrottle()
    throttle.maybe_fire(_reading(0))

    assert throttle.maybe_fire(_reading(120)) is False
    assert throttle.maybe_fire(_reading(121)) is True


def test_safe_readings_never_touch_state() -> None:
    throttle = AlertThrottle()

    assert throttle.maybe_fire(_reading(0, ReadingStatus.SAFE)) is False
    assert throttle.last_alert_at is None

    throttle.maybe_fire(_reading(5))
    throttle.maybe_fire(_reading(500, ReadingStatus.SAFE))
    assert throttle.last_alert_at == _BASE + timedelta(seconds=5)


def test_reset_allows_immediate_alert() -> None:
    throttle = AlertThrottle()
    throttle.maybe_fire(_reading(0))

    throttle.reset()

    assert throttle.last_alert_at is None
    assert throttle.maybe_fire(_reading(1)) is True
