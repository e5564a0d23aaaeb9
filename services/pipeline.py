"""Wiring of the ingestion, fan-out, sampling and history components."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from datastore.history_table import HistoryTable, build_default_table
from services.fanout import FanoutHub
from services.heartbeat import Heartbeat
from services.history import HistoryQuery
from services.ingestion import IngestionLoop
from services.latest import LatestValueStore
from services.sampler import PersistenceSampler
from settings import get_settings
from transport.lines import LineSource, build_default_source

logger = logging.getLogger(__name__)


class SensorPipeline:
    """Owns the shared state and the background tasks that drive it."""

    def __init__(
        self,
        source: LineSource,
        table: HistoryTable,
        sample_interval: float = 15 * 60.0,
        heartbeat_interval: float = 1.0,
        history_window: timedelta = timedelta(hours=24),
        send_timeout: float = 5.0,
        queue_size: int = 100,
    ) -> None:
        self.table = table
        self.latest = LatestValueStore()
        self.hub = FanoutHub(self.latest, send_timeout=send_timeout, queue_size=queue_size)
        self.history = HistoryQuery(table, window=history_window)
        self.sampler = PersistenceSampler(self.latest, table, interval=sample_interval)
        self.heartbeat = Heartbeat(self.hub, interval=heartbeat_interval)
        self.ingestion = IngestionLoop(source, self.latest, self.hub)
        self.ingestion_error: Optional[BaseException] = None
        self._tasks: list[asyncio.Task[None]] = []
        self._ingestion_task: Optional[asyncio.Task[None]] = None

    @property
    def ingesting(self) -> bool:
        return self._ingestion_task is not None and not self._ingestion_task.done()

    async def start(self) -> None:
        """Launch the ingestion loop, the sampler and the heartbeat."""
        if self._tasks:
            return
        self._ingestion_task = asyncio.create_task(self.ingestion.run(), name="ingestion")
        self._ingestion_task.add_done_callback(self._on_ingestion_done)
        self._tasks = [
            self._ingestion_task,
            asyncio.create_task(self.sampler.run(), name="history-sampler"),
            asyncio.create_task(self.heartbeat.run(), name="heartbeat"),
        ]

    async def shutdown(self) -> None:
        """Cancel background tasks and disconnect every subscriber."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.hub.close()

    def _on_ingestion_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self.ingestion_error = exc
        logger.error("Sensor ingestion stopped", extra={"error": str(exc)})


@lru_cache
def build_default_pipeline() -> SensorPipeline:
    """Factory that wires the pipeline from environment settings."""
    settings = get_settings()
    return SensorPipeline(
        source=build_default_source(),
        table=build_default_table(),
        sample_interval=settings.sample_interval_seconds,
        heartbeat_interval=settings.heartbeat_interval_seconds,
        history_window=timedelta(hours=settings.history_window_hours),
        send_timeout=settings.send_timeout_seconds,
        queue_size=settings.subscriber_queue_size,
    )
