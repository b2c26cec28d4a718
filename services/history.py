"""Bounded in-memory history of recent readings."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Optional

from models.records import Reading

HISTORY_CAPACITY = 50


class HistoryCache:
    """FIFO of the most recent readings, oldest evicted first."""

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        self.capacity = capacity
        self._items: Deque[Reading] = deque(maxlen=capacity)
        self._lock = Lock()

    def append(self, reading: Reading) -> None:
        with self._lock:
            self._items.append(reading)

    def snapshot(self) -> Optional[Reading]:
        """Return the newest reading, or ``None`` when empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items[-1]

    def dump(self) -> list[Reading]:
        """Return every cached reading, oldest first."""
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
