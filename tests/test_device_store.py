"""Unit tests for the durable device store."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from datastore.device_store import DeviceStore
from models.records import Pin, Reading, ReadingStatus

_AT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _reading(ph: float = 7.0) -> Reading:
    return Reading(
        captured_at=_AT,
        ph=ph,
        tds=100.0,
        temp=20.0,
        turbidity=1.0,
        status=ReadingStatus.SAFE if 6.5 <= ph <= 8.5 else ReadingStatus.UNSAFE,
        lat=1.0,
        lng=1.0,
    )


def _pin(pin_id: str = "pin-1") -> Pin:
    return Pin(
        id=pin_id, lat=1.0, lng=1.0, last_reading=_reading(), created_at=_AT, updated_at=_AT
    )


def test_latest_and_history_are_kept_per_device() -> None:
    store = DeviceStore()

    store.write_latest("dev-a", _reading(7.0))
    store.append_history("dev-a", _reading(7.0))
    store.append_history("dev-a", _reading(9.0))
    store.write_latest("dev-b", _reading(6.0))

    assert store.get_latest("dev-a") == _reading(7.0)
    assert [item.ph for item in store.list_history("dev-a")] == [7.0, 9.0]
    assert store.get_latest("dev-b").status is ReadingStatus.UNSAFE  # type: ignore[union-attr]
    assert store.list_devices() == ["dev-a", "dev-b"]


def test_missing_device_returns_empty_results() -> None:
    store = DeviceStore()

    assert store.get_latest("missing") is None
    assert store.list_history("missing") == []
    assert store.list_pins("missing") == []


def test_create_and_update_pin() -> None:
    store = DeviceStore()
    pin = _pin()
    store.create_pin("dev-a", pin)

    pin.last_reading = _reading(9.0)
    store.update_pin("dev-a", pin)

    loaded = store.list_pins("dev-a")
    assert len(loaded) == 1
    assert loaded[0].last_reading.ph == 9.0


def test_update_unknown_pin_raises_key_error() -> None:
    store = DeviceStore()

    with pytest.raises(KeyError):
        store.update_pin("dev-a", _pin("unknown"))


def test_delete_device_removes_everything() -> None:
    store = DeviceStore()
    store.write_latest("dev-a", _reading())
    store.create_pin("dev-a", _pin())

    store.delete_device("dev-a")

    assert store.get_latest("dev-a") is None
    assert store.list_pins("dev-a") == []
    assert store.list_devices() == []


def test_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "store.json"
    store = DeviceStore(persistence_path=path)
    store.write_latest("dev-a", _reading())
    store.create_pin("dev-a", _pin())

    payload = json.loads(path.read_text())
    assert payload["dev-a"]["latest"]["pH"] == 7.0

    reloaded = DeviceStore(persistence_path=path)
    assert reloaded.get_latest("dev-a") == _reading()
    assert reloaded.list_pins("dev-a") == [_pin()]


def test_corrupt_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json")

    store = DeviceStore(persistence_path=path)

    assert store.list_devices() == []
