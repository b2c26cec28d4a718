from __future__ import annotations

from typing import Iterable

from datastore.device_store import build_default_store
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "store.json"

    monkeypatch.setenv("WQ_DEFAULT_DEVICE_ID", "tank-7")
    monkeypatch.setenv("WQ_RESET_PASSWORD", " hunter2 ")
    monkeypatch.setenv("NTFY_BASE_URL", "https://push.example/")
    monkeypatch.setenv("NTFY_TOPIC", "plant-alerts")
    monkeypatch.setenv("DEVICE_STORE_PATH", str(store_path))
    monkeypatch.setenv("DOWNSTREAM_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_store)
    _clear_caches(caches)

    try:
        settings = get_settings()
        store = build_default_store()

        assert settings.default_device_id == "tank-7"
        assert settings.reset_password == "hunter2"
        assert settings.ntfy_base_url == "https://push.example"
        assert settings.ntfy_topic == "plant-alerts"
        assert settings.downstream_timeout == 2.5
        assert settings.log_level == "DEBUG"
        assert store.persistence_path == store_path
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("DOWNSTREAM_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("BROADCAST_SEND_TIMEOUT_SECONDS", "-1")
    monkeypatch.setenv("DEVICE_STORE_PATH", "  ")
    monkeypatch.delenv("WQ_RESET_PASSWORD", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()

        assert settings.downstream_timeout == 10.0
        assert settings.broadcast_send_timeout == 5.0
        assert settings.store_path is None
        assert settings.reset_password is None
    finally:
        get_settings.cache_clear()
