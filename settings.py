from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DEFAULT_DEVICE_ENV = "WQ_DEFAULT_DEVICE_ID"
_RESET_PASSWORD_ENV = "WQ_RESET_PASSWORD"
_NTFY_BASE_URL_ENV = "NTFY_BASE_URL"
_NTFY_TOPIC_ENV = "NTFY_TOPIC"
_STORE_PATH_ENV = "DEVICE_STORE_PATH"
_DOWNSTREAM_TIMEOUT_ENV = "DOWNSTREAM_TIMEOUT_SECONDS"
_BROADCAST_TIMEOUT_ENV = "BROADCAST_SEND_TIMEOUT_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    default_device_id: str
    reset_password: Optional[str]
    ntfy_base_url: str
    ntfy_topic: str
    store_path: Optional[str]
    downstream_timeout: float
    broadcast_send_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        default_device_id=_read_str_env(_DEFAULT_DEVICE_ENV, "default"),
        reset_password=_read_optional_env(_RESET_PASSWORD_ENV, None),
        ntfy_base_url=_read_str_env(_NTFY_BASE_URL_ENV, "https://ntfy.sh").rstrip("/"),
        ntfy_topic=_read_str_env(_NTFY_TOPIC_ENV, "water-project-group-rrdv"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/device_store.json"),
        downstream_timeout=_read_positive_float(_DOWNSTREAM_TIMEOUT_ENV, 10.0),
        broadcast_send_timeout=_read_positive_float(_BROADCAST_TIMEOUT_ENV, 5.0),
        log_level=_read_log_level("INFO"),
    )
