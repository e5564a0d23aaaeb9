from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TTY_PORT_ENV = "TTY_PORT"
_BAUD_RATE_ENV = "SERIAL_BAUD_RATE"
_REPLAY_PATH_ENV = "SENSOR_REPLAY_PATH"
_DB_PATH_ENV = "HISTORY_DB_PATH"
_SAMPLE_INTERVAL_ENV = "SAMPLE_INTERVAL_SECONDS"
_HEARTBEAT_INTERVAL_ENV = "HEARTBEAT_INTERVAL_SECONDS"
_HISTORY_WINDOW_ENV = "HISTORY_WINDOW_HOURS"
_SEND_TIMEOUT_ENV = "SUBSCRIBER_SEND_TIMEOUT_SECONDS"
_QUEUE_SIZE_ENV = "SUBSCRIBER_QUEUE_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    tty_port: str
    baud_rate: int
    replay_path: Optional[str]
    history_db_path: str
    sample_interval_seconds: float
    heartbeat_interval_seconds: float
    history_window_hours: float
    send_timeout_seconds: float
    subscriber_queue_size: int
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


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


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
        tty_port=_read_str_env(_TTY_PORT_ENV, "/dev/ttyUSB0"),
        baud_rate=_read_positive_int(_BAUD_RATE_ENV, 9600),
        replay_path=_read_optional_env(_REPLAY_PATH_ENV, None),
        history_db_path=_read_str_env(_DB_PATH_ENV, "./data/ttysensor.db"),
        sample_interval_seconds=_read_positive_float(_SAMPLE_INTERVAL_ENV, 15 * 60.0),
        heartbeat_interval_seconds=_read_positive_float(_HEARTBEAT_INTERVAL_ENV, 1.0),
        history_window_hours=_read_positive_float(_HISTORY_WINDOW_ENV, 24.0),
        send_timeout_seconds=_read_positive_float(_SEND_TIMEOUT_ENV, 5.0),
        subscriber_queue_size=_read_positive_int(_QUEUE_SIZE_ENV, 100),
        log_level=_read_log_level("INFO"),
    )
