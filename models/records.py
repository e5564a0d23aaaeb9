"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Reading:
    """A validated temperature/humidity observation from the sensor stream."""

    temperature: float
    humidity: float
    observed_at: datetime


@dataclass(frozen=True, slots=True)
class HistoryRecord:
    """A sampled reading as stored in the durable history table."""

    temperature: float
    humidity: float
    created_at: datetime
