"""Timer-driven sampling of the latest reading into the history table."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from datastore.history_table import HistoryTable, StoreError
from models.records import HistoryRecord
from services.latest import LatestValueStore

logger = logging.getLogger(__name__)


class PersistenceSampler:
    """Copies the current reading into durable storage once per interval.

    This is deliberately lossy: a tick records the value held at tick time,
    not every reading that arrived since the previous tick.
    """

    def __init__(
        self,
        latest: LatestValueStore,
        table: HistoryTable,
        interval: float = 15 * 60.0,
    ) -> None:
        self.latest = latest
        self.table = table
        self.interval = interval

    async def tick(self) -> Optional[HistoryRecord]:
        reading = self.latest.get()
        if reading is None:
            logger.debug("No reading yet; skipping history sample")
            return None

        try:
            record = await asyncio.to_thread(
                self.table.append, reading.temperature, reading.humidity
            )
        except StoreError:
            logger.exception(
                "Failed to persist history sample",
                extra={"temperature": reading.temperature, "humidity": reading.humidity},
            )
            return None

        logger.info(
            "Persisted history sample",
            extra={"temperature": record.temperature, "humidity": record.humidity},
        )
        return record

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()
