"""Read loop that turns the sensor line stream into snapshot updates and push events."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from app.schemas import DataEvent
from models.records import Reading
from services.fanout import FanoutHub
from services.latest import LatestValueStore
from services.parser import parse_reading
from transport.lines import LineSource, TransportClosedError, TransportError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionLoop:
    """Single writer of the latest snapshot and source of live data events."""

    def __init__(
        self,
        source: LineSource,
        latest: LatestValueStore,
        hub: FanoutHub,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.source = source
        self.latest = latest
        self.hub = hub
        self._clock = clock

    def handle_line(self, line: str | bytes) -> Optional[Reading]:
        reading = parse_reading(line, observed_at=self._clock())
        if reading is None:
            return None

        # Snapshot first so a client reacting to the event can re-read it.
        self.latest.set(reading)
        self.hub.publish(DataEvent.from_reading(reading))
        logger.debug(
            "Received sensor reading",
            extra={"temperature": reading.temperature, "humidity": reading.humidity},
        )
        return reading

    async def run(self) -> None:
        """Consume the source until it fails or ends; both are fatal."""
        try:
            async for line in self.source.lines():
                self.handle_line(line)
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"Sensor transport failed: {exc}") from exc
        raise TransportClosedError("Sensor line stream ended.")
