"""Line-level decoding of sensor output into validated readings."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import Any, Optional

from models.records import Reading

logger = logging.getLogger(__name__)

_FIELDS = ("temperature", "humidity")


def _coerce_number(value: Any) -> Optional[float]:
    # bool is an int subclass but not a JSON number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _discard(line: str | bytes, reason: str) -> None:
    logger.debug("Discarding sensor line %r", line, extra={"reason": reason})


def parse_reading(line: str | bytes, observed_at: datetime) -> Optional[Reading]:
    """Decode one raw line into a Reading, or return None if it is unusable.

    Malformed input never raises: a noisy transport regularly produces
    truncated or garbled lines and the stream has to keep flowing.
    """
    if isinstance(line, bytes):
        try:
            text = line.decode("utf-8")
        except UnicodeDecodeError:
            _discard(line, "invalid utf-8")
            return None
    else:
        text = line

    candidate = text.strip()
    if not candidate:
        _discard(line, "empty line")
        return None

    try:
        payload = json.loads(candidate)
    except ValueError:
        _discard(line, "invalid json")
        return None

    if not isinstance(payload, dict):
        _discard(line, "not an object")
        return None

    values: dict[str, float] = {}
    for field in _FIELDS:
        if field not in payload:
            _discard(line, f"missing {field}")
            return None
        number = _coerce_number(payload[field])
        if number is None:
            _discard(line, f"invalid {field}")
            return None
        values[field] = number

    return Reading(
        temperature=values["temperature"],
        humidity=values["humidity"],
        observed_at=observed_at,
    )
