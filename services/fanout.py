"""Live fan-out of push events to connected dashboard clients."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Awaitable, Callable, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel

from app.schemas import DataEvent
from services.latest import LatestValueStore

logger = logging.getLogger(__name__)

Sender = Callable[[str], Awaitable[None]]


class Subscriber:
    """One connected client with its own outbound queue and sender task.

    Messages are queued without waiting and delivered in order by the
    sender task. Each send is bounded by ``send_timeout``; a failed or
    stalled send closes the subscriber and reports it through
    ``on_failure``.
    """

    def __init__(
        self,
        send: Sender,
        on_failure: Callable[["Subscriber"], None],
        send_timeout: float = 5.0,
        queue_size: int = 100,
    ) -> None:
        self.id = uuid4().hex
        self._send = send
        self._on_failure = on_failure
        self._send_timeout = send_timeout
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    def start(self) -> None:
        if self._task is None and not self._closed:
            self._task = asyncio.create_task(self._deliver(), name=f"subscriber-{self.id}")

    def offer(self, message: str) -> bool:
        """Queue a message; False when the subscriber is closed or backlogged."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def wait_idle(self) -> None:
        """Wait until every queued message was sent or dropped."""
        await self._queue.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if self._task is not None and self._task is not current:
            self._task.cancel()
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()

    async def _deliver(self) -> None:
        while not self._closed:
            message = await self._queue.get()
            try:
                await asyncio.wait_for(self._send(message), timeout=self._send_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.info(
                    "Delivery to subscriber failed",
                    extra={"subscriber_id": self.id, "error": repr(exc)},
                )
                self._on_failure(self)
                return
            finally:
                self._queue.task_done()


class FanoutHub:
    """Registry of live subscribers with best-effort broadcast."""

    def __init__(
        self,
        latest: LatestValueStore,
        send_timeout: float = 5.0,
        queue_size: int = 100,
    ) -> None:
        self._latest = latest
        self._send_timeout = send_timeout
        self._queue_size = queue_size
        self._subscribers: Dict[str, Subscriber] = {}
        self._lock = Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, send: Sender) -> Subscriber:
        """Register a client; it gets the current reading first if one exists."""
        subscriber = Subscriber(
            send,
            on_failure=self.unsubscribe,
            send_timeout=self._send_timeout,
            queue_size=self._queue_size,
        )
        reading = self._latest.get()
        if reading is not None:
            subscriber.offer(DataEvent.from_reading(reading).model_dump_json())
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
            count = len(self._subscribers)
        subscriber.start()
        logger.info(
            "Subscriber connected",
            extra={"subscriber_id": subscriber.id, "subscriber_count": count},
        )
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscriber.id, None)
            count = len(self._subscribers)
        subscriber.close()
        if removed is not None:
            logger.info(
                "Subscriber disconnected",
                extra={"subscriber_id": subscriber.id, "subscriber_count": count},
            )

    def publish(self, event: BaseModel) -> int:
        """Queue ``event`` for every open subscriber and return how many took it."""
        message = event.model_dump_json()
        with self._lock:
            subscribers = list(self._subscribers.values())

        delivered = 0
        for subscriber in subscribers:
            if subscriber.offer(message):
                delivered += 1
                continue
            logger.warning(
                "Dropping subscriber that is closed or backlogged",
                extra={"subscriber_id": subscriber.id},
            )
            self.unsubscribe(subscriber)
        return delivered

    def close(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscriber in subscribers:
            self.unsubscribe(subscriber)
