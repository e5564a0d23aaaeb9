"""Line-oriented byte sources feeding the ingestion loop."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional, Protocol, Union

import serial

from settings import get_settings

logger = logging.getLogger(__name__)

Line = Union[str, bytes]

MAX_LINE_BYTES = 4096


class TransportError(RuntimeError):
    """The underlying byte stream failed."""


class TransportClosedError(TransportError):
    """The underlying byte stream ended."""


class LineSource(Protocol):
    def lines(self) -> AsyncIterator[Line]:
        ...


class SerialLineSource:
    """Newline-delimited lines from a serial TTY, read off the event loop."""

    def __init__(
        self,
        port: str,
        baud_rate: int = 9600,
        read_timeout: float = 0.5,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        self.port = port
        self.baud_rate = baud_rate
        self.read_timeout = read_timeout
        self.max_line_bytes = max_line_bytes

    async def lines(self) -> AsyncIterator[Line]:
        try:
            handle = serial.Serial(self.port, self.baud_rate, timeout=self.read_timeout)
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(f"Unable to open serial port {self.port!r}: {exc}") from exc

        logger.info(
            "Opened serial port",
            extra={"port": self.port, "baud_rate": self.baud_rate},
        )
        buffer = b""
        try:
            while True:
                try:
                    chunk: bytes = await asyncio.to_thread(handle.readline)
                except serial.SerialException as exc:
                    raise TransportError(f"Serial port {self.port!r} failed: {exc}") from exc
                if not chunk:
                    continue
                # readline returns a partial line when the read times out
                buffer += chunk
                if len(buffer) > self.max_line_bytes:
                    logger.debug(
                        "Discarding oversized serial input",
                        extra={
                            "port": self.port,
                            "reason": f"no newline within {self.max_line_bytes} bytes",
                        },
                    )
                    buffer = b""
                    continue
                if not buffer.endswith(b"\n"):
                    continue
                line, buffer = buffer, b""
                yield line
        finally:
            handle.close()
            logger.info("Closed serial port", extra={"port": self.port})


class ReplayLineSource:
    """Replays a fixed sequence of lines, or a capture file taken from the sensor."""

    def __init__(
        self,
        lines: Iterable[Line] = (),
        hold_open: bool = False,
        interval: float = 0.0,
        path: Optional[Path] = None,
    ) -> None:
        self._lines = list(lines)
        self.hold_open = hold_open
        self.interval = interval
        self.path = path

    @classmethod
    def from_path(cls, path: str | Path, hold_open: bool = True, interval: float = 0.0) -> "ReplayLineSource":
        return cls(hold_open=hold_open, interval=interval, path=Path(path))

    def _load(self) -> list[Line]:
        if self.path is None:
            return self._lines
        try:
            return list(self.path.read_bytes().splitlines())
        except OSError as exc:
            raise TransportError(f"Unable to read replay file {str(self.path)!r}: {exc}") from exc

    async def lines(self) -> AsyncIterator[Line]:
        for line in self._load():
            yield line
            await asyncio.sleep(self.interval)
        if self.hold_open:
            await asyncio.Event().wait()


def build_default_source() -> LineSource:
    settings = get_settings()
    if settings.replay_path:
        logger.info("Replaying sensor lines from file", extra={"replay_path": settings.replay_path})
        return ReplayLineSource.from_path(settings.replay_path)
    return SerialLineSource(port=settings.tty_port, baud_rate=settings.baud_rate)
