"""Cooldown gate for outbound unsafe-water alerts."""

from __future__ import annotations

from datetime import datetime, timedelta
from threading import Lock
from typing import Optional

from models.records import Reading

ALERT_COOLDOWN = timedelta(seconds=120)


class AlertThrottle:
    """Allow at most one alert attempt per cooldown window.

    The window starts when an attempt is made, whether or not the
    notification is eventually delivered.
    """

    def __init__(self, cooldown: timedelta = ALERT_COOLDOWN) -> None:
        self.cooldown = cooldown
        self._last_alert_at: Optional[datetime] = None
        self._lock = Lock()

    @property
    def last_alert_at(self) -> Optional[datetime]:
        with self._lock:
            return self._last_alert_at

    def maybe_fire(self, reading: Reading, now: Optional[datetime] = None) -> bool:
        if not reading.is_unsafe:
            return False
        moment = now or reading.captured_at
        with self._lock:
            if self._last_alert_at is not None and moment - self._last_alert_at <= self.cooldown:
                return False
            self._last_alert_at = moment
            return True

    def reset(self) -> None:
        with self._lock:
            self._last_alert_at = None
