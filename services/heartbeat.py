from __future__ import annotations

import asyncio
import time

from app.schemas import UptimeEvent
from services.fanout import FanoutHub


class Heartbeat:
    """Publishes server uptime on its own timer, independent of sensor traffic."""

    def __init__(self, hub: FanoutHub, interval: float = 1.0) -> None:
        self.hub = hub
        self.interval = interval
        self._started = time.monotonic()

    def uptime_millis(self) -> int:
        return int((time.monotonic() - self._started) * 1000)

    def tick(self) -> UptimeEvent:
        event = UptimeEvent(uptime_millis=self.uptime_millis())
        self.hub.publish(event)
        return event

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()
