"""Tests for the serial and replay line sources."""

from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest
import serial

from settings import get_settings
from transport.lines import (
    ReplayLineSource,
    SerialLineSource,
    TransportError,
    build_default_source,
)


async def _collect(source, limit: int | None = None) -> List:
    collected = []
    async for line in source.lines():
        collected.append(line)
        if limit is not None and len(collected) >= limit:
            break
    return collected


class FakeSerial:
    instances: List["FakeSerial"] = []
    chunks: List[bytes] = [
        b'{"temperature": 2',
        b"",
        b'1.5, "humidity": 40.0}\n',
        b'{"temperature": 22.0, "humidity": 39.0}\n',
    ]

    def __init__(self, port, baudrate, timeout=None) -> None:
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self.closed = False
        self._chunks = list(self.chunks)
        FakeSerial.instances.append(self)

    def readline(self) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        raise serial.SerialException("device disconnected")

    def close(self) -> None:
        self.closed = True


class NoisySerial(FakeSerial):
    # a mis-bauded line: 10 KiB of garbage without a newline, then a real reading
    chunks = [b"\x00" * 1024] * 10 + [b'{"temperature": 23.0, "humidity": 38.0}\n']


def test_replay_source_yields_lines_then_ends() -> None:
    source = ReplayLineSource(["a", "b", "c"])

    assert asyncio.run(_collect(source)) == ["a", "b", "c"]


def test_replay_source_can_hold_open() -> None:
    source = ReplayLineSource(["only"], hold_open=True)

    async def scenario() -> List:
        collected: List = []

        async def consume() -> None:
            async for line in source.lines():
                collected.append(line)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(consume(), timeout=0.05)
        return collected

    assert asyncio.run(scenario()) == ["only"]


def test_replay_source_reads_capture_file(tmp_path) -> None:
    capture = tmp_path / "capture.log"
    capture.write_bytes(b'{"temperature": 1, "humidity": 2}\nnoise\n')
    source = ReplayLineSource.from_path(capture, hold_open=False)

    assert asyncio.run(_collect(source)) == [b'{"temperature": 1, "humidity": 2}', b"noise"]


def test_replay_source_missing_file_fails_on_read(tmp_path) -> None:
    source = ReplayLineSource.from_path(tmp_path / "missing.log")

    with pytest.raises(TransportError):
        asyncio.run(_collect(source))


def test_serial_source_joins_partial_reads_and_surfaces_errors(monkeypatch) -> None:
    FakeSerial.instances.clear()
    monkeypatch.setattr("transport.lines.serial.Serial", FakeSerial)
    source = SerialLineSource("/dev/ttyTEST", baud_rate=115200, read_timeout=0.1)
    collected: List = []

    async def scenario() -> None:
        async for line in source.lines():
            collected.append(line)

    with pytest.raises(TransportError, match="device disconnected"):
        asyncio.run(scenario())

    assert collected == [
        b'{"temperature": 21.5, "humidity": 40.0}\n',
        b'{"temperature": 22.0, "humidity": 39.0}\n',
    ]
    handle = FakeSerial.instances[-1]
    assert (handle.port, handle.baudrate, handle.timeout) == ("/dev/ttyTEST", 115200, 0.1)
    assert handle.closed is True


def test_serial_source_open_failure_raises_transport_error(monkeypatch) -> None:
    def refuse(*args, **kwargs):
        raise serial.SerialException("could not open port")

    monkeypatch.setattr("transport.lines.serial.Serial", refuse)

    with pytest.raises(TransportError, match="Unable to open serial port"):
        asyncio.run(_collect(SerialLineSource("/dev/ttyMISSING")))


def test_default_source_follows_settings(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TTY_PORT", "/dev/ttyACM0")
    monkeypatch.setenv("SERIAL_BAUD_RATE", "19200")
    monkeypatch.delenv("SENSOR_REPLAY_PATH", raising=False)
    get_settings.cache_clear()
    try:
        source = build_default_source()
        assert isinstance(source, SerialLineSource)
        assert (source.port, source.baud_rate) == ("/dev/ttyACM0", 19200)

        monkeypatch.setenv("SENSOR_REPLAY_PATH", str(tmp_path / "capture.log"))
        get_settings.cache_clear()
        replay = build_default_source()
        assert isinstance(replay, ReplayLineSource)
        assert replay.path == tmp_path / "capture.log"
    finally:
        get_settings.cache_clear()


def test_serial_source_discards_input_without_newline(monkeypatch, caplog) -> None:
    NoisySerial.instances.clear()
    monkeypatch.setattr("transport.lines.serial.Serial", NoisySerial)
    source = SerialLineSource("/dev/ttyNOISY")
    collected: List = []

    async def scenario() -> None:
        async for line in source.lines():
            collected.append(line)

    with caplog.at_level(logging.DEBUG, logger="transport.lines"):
        with pytest.raises(TransportError, match="device disconnected"):
            asyncio.run(scenario())

    assert collected == [b'{"temperature": 23.0, "humidity": 38.0}\n']
    discards = [r for r in caplog.records if r.getMessage() == "Discarding oversized serial input"]
    assert len(discards) == 2
    assert discards[0].reason == "no newline within 4096 bytes"
    assert NoisySerial.instances[-1].closed is True
