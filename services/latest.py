from __future__ import annotations

from threading import Lock
from typing import Optional

from models.records import Reading


class LatestValueStore:
    """Holds the most recent valid reading.

    The value is replaced wholesale on every update and readings are
    immutable, so callers can keep what ``get`` returns without copying.
    """

    def __init__(self) -> None:
        self._reading: Optional[Reading] = None
        self._lock = Lock()

    def get(self) -> Optional[Reading]:
        with self._lock:
            return self._reading

    def set(self, reading: Reading) -> None:
        with self._lock:
            self._reading = reading
