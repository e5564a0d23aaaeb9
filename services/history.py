from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from datastore.history_table import HistoryTable
from models.records import HistoryRecord

DEFAULT_WINDOW = timedelta(hours=24)


class HistoryQuery:
    """Bounded look-back over the sampled history."""

    def __init__(self, table: HistoryTable, window: timedelta = DEFAULT_WINDOW) -> None:
        self.table = table
        self.window = window

    def records(
        self,
        now: Optional[datetime] = None,
        window: Optional[timedelta] = None,
    ) -> list[HistoryRecord]:
        """Return records created within the window ending at ``now``, oldest first.

        Raises ``StoreError`` if the table cannot be read.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        if window is None:
            window = self.window
        return self.table.query_range(now - window)
