from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import DeviceRecord, PinPayload, ReadingPayload
from models.records import Pin, Reading
from settings import get_settings


class DeviceStore:
    """Durable per-device record of latest reading, history and pins."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._records: Dict[str, DeviceRecord] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def write_latest(self, device_id: str, reading: Reading) -> None:
        with self._lock:
            record = self._record(device_id)
            record.latest = ReadingPayload.from_reading(reading)
            self._persist()

    def get_latest(self, device_id: str) -> Optional[Reading]:
        with self._lock:
            record = self._records.get(device_id)
            if record is None or record.latest is None:
                return None
            return record.latest.to_reading()

    def append_history(self, device_id: str, reading: Reading) -> None:
        with self._lock:
            self._record(device_id).history.append(ReadingPayload.from_reading(reading))
            self._persist()

    def list_history(self, device_id: str) -> list[Reading]:
        with self._lock:
            record = self._records.get(device_id)
            if record is None:
                return []
            return [item.to_reading() for item in record.history]

    def list_pins(self, device_id: str) -> list[Pin]:
        with self._lock:
            record = self._records.get(device_id)
            if record is None:
                return []
            return [item.to_pin() for item in record.pins.values()]

    def create_pin(self, device_id: str, pin: Pin) -> None:
        with self._lock:
            self._record(device_id).pins[pin.id] = PinPayload.from_pin(pin)
            self._persist()

    def update_pin(self, device_id: str, pin: Pin) -> None:
        with self._lock:
            record = self._records.get(device_id)
            if record is None or pin.id not in record.pins:
                raise KeyError(f"Pin {pin.id!r} not found for device {device_id!r}.")
            record.pins[pin.id] = PinPayload.from_pin(pin)
            self._persist()

    def delete_device(self, device_id: str) -> None:
        with self._lock:
            self._records.pop(device_id, None)
            self._persist()

    def list_devices(self) -> list[str]:
        with self._lock:
            return sorted(self._records)

    def _record(self, device_id: str) -> DeviceRecord:
        record = self._records.get(device_id)
        if record is None:
            record = DeviceRecord(device_id=device_id)
            self._records[device_id] = record
        return record

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            device_id: record.model_dump(mode="json", by_alias=True)
            for device_id, record in self._records.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for device_id, payload in data.items():
            self._records[device_id] = DeviceRecord.model_validate(payload)


@lru_cache
def build_default_store(path: Optional[str] = None) -> DeviceStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return DeviceStore(persistence_path=persistence)
