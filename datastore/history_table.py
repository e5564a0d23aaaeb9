from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from models.records import HistoryRecord
from settings import get_settings

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Fixed-width UTC text so that string comparison in SQL matches time order.
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sensor_data (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    temperature REAL NOT NULL,
    humidity REAL NOT NULL,
    created_at TEXT NOT NULL
)
"""


class StoreError(RuntimeError):
    """Raised when the history store cannot complete a read or write."""


def _to_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _from_text(value: str) -> datetime:
    return datetime.strptime(value, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class HistoryTable:
    """Append-only SQLite table of sampled readings."""

    def __init__(self, path: str = MEMORY_PATH) -> None:
        self.path = path
        self._lock = Lock()
        if path != MEMORY_PATH:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False)
            self._conn.execute(_SCHEMA)
            self._conn.commit()
            row = self._conn.execute("SELECT MAX(created_at) FROM sensor_data").fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open history store at {path!r}: {exc}") from exc
        self._last_created_at: Optional[datetime] = (
            _from_text(row[0]) if row and row[0] else None
        )

    def append(
        self,
        temperature: float,
        humidity: float,
        created_at: Optional[datetime] = None,
    ) -> HistoryRecord:
        """Insert one row and return it with the timestamp the store assigned."""

        with self._lock:
            stamp = _from_text(_to_text(created_at or datetime.now(timezone.utc)))
            if self._last_created_at is not None and stamp < self._last_created_at:
                stamp = self._last_created_at
            try:
                self._conn.execute(
                    "INSERT INTO sensor_data (temperature, humidity, created_at) VALUES (?, ?, ?)",
                    (temperature, humidity, _to_text(stamp)),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to append history record: {exc}") from exc
            self._last_created_at = stamp
        return HistoryRecord(temperature=temperature, humidity=humidity, created_at=stamp)

    def query_range(self, since: datetime) -> list[HistoryRecord]:
        """Return every record created at or after ``since``, oldest first."""

        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT temperature, humidity, created_at FROM sensor_data "
                    "WHERE created_at >= ? ORDER BY created_at ASC, id ASC",
                    (_to_text(since),),
                ).fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"Failed to query history records: {exc}") from exc
        return [
            HistoryRecord(temperature=row[0], humidity=row[1], created_at=_from_text(row[2]))
            for row in rows
        ]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


@lru_cache
def build_default_table(path: Optional[str] = None) -> HistoryTable:
    settings = get_settings()
    table_path = settings.history_db_path if path is None else path
    logger.info("Opening history store", extra={"db_path": table_path})
    return HistoryTable(path=table_path)
