"""Pydantic schemas for the HTTP API and push channel."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from models.records import HistoryRecord, Reading


class ServiceStatus(str, Enum):
    """Overall health states exposed via the API."""

    ok = "ok"
    degraded = "degraded"


class ReadingOut(BaseModel):
    """Most recent reading as served to dashboard clients."""

    temperature: float
    humidity: float
    observed_at: datetime

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls(
            temperature=reading.temperature,
            humidity=reading.humidity,
            observed_at=reading.observed_at,
        )


class TemperatureOut(BaseModel):
    temperature: float


class HumidityOut(BaseModel):
    humidity: float


class HistoryRecordOut(BaseModel):
    """One sampled row from the durable history."""

    temperature: float
    humidity: float
    created_at: datetime

    @classmethod
    def from_record(cls, record: HistoryRecord) -> "HistoryRecordOut":
        return cls(
            temperature=record.temperature,
            humidity=record.humidity,
            created_at=record.created_at,
        )


class DataEvent(BaseModel):
    """Push event carrying a freshly parsed reading."""

    type: Literal["data"] = "data"
    data: ReadingOut

    @classmethod
    def from_reading(cls, reading: Reading) -> "DataEvent":
        return cls(data=ReadingOut.from_reading(reading))


class UptimeEvent(BaseModel):
    """Push event carrying the server uptime."""

    type: Literal["uptime"] = "uptime"
    uptime_millis: int = Field(..., ge=0)


class HealthReport(BaseModel):
    status: ServiceStatus
    ingesting: bool
    subscribers: int = Field(..., ge=0)
    detail: str | None = None
