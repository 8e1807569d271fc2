"""
Channel normalization.

Converts the raw, kind-specific payloads pushed by the realtime store into
:class:`~sitewatch.domain.models.Reading` objects.

Raw payload shapes
------------------
- binary detector (flame, smoke, sound)::

    {"detect": bool, "value": number, "ts": seconds, "src": str, "raw": {...}}

- environmental (DHT)::

    {"temperature_c": number, "humidity_pct": number, "ts": seconds}

- motion (gyro)::

    {"magnitude": number, "is_shaking": bool, "ts": seconds}

- classification counts (PPE)::

    {"classes": {"hat": int, "person": int}, "total": int, "ts": seconds}

Malformed payloads are never an error: the normalizer returns ``None`` and
the caller skips the update.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional

from sitewatch.domain.clock import now_ms as _wall_clock_ms
from sitewatch.domain.models import ChannelKind, Reading, SensorStatus

logger = logging.getLogger(__name__)

_ENVIRONMENTAL_FIELDS = {
    "temp": "temperature_c",
    "humid": "humidity_pct",
}


def _is_number(v: Any) -> bool:
    # bool is an int subclass; device flags must never pass as values
    if isinstance(v, bool):
        return False
    if not isinstance(v, (int, float)):
        return False
    try:
        return math.isfinite(v)
    except OverflowError:
        # JSON integers beyond float range
        return False


def _timestamp_ms(raw: Mapping[str, Any], now_ms: Optional[int]) -> int:
    """
    Convert the payload's ``ts`` (seconds, fractional) into integer ms.

    Falls back to the current wall-clock time when ``ts`` is missing, not a
    number, or too large to express in milliseconds.
    """
    ts = raw.get("ts")
    if _is_number(ts):
        ms = float(ts) * 1000
        if math.isfinite(ms):
            return int(math.floor(ms))
    return now_ms if now_ms is not None else _wall_clock_ms()


def _binary_detector(raw: Mapping[str, Any], ts: int) -> Optional[Reading]:
    value = raw.get("value")
    if not _is_number(value):
        return None
    status = SensorStatus.CRITICAL if raw.get("detect") else SensorStatus.OK
    return Reading(timestamp=ts, value=float(value), status=status)


def _motion(raw: Mapping[str, Any], ts: int) -> Optional[Reading]:
    magnitude = raw.get("magnitude")
    if not _is_number(magnitude):
        return None
    status = SensorStatus.WARN if raw.get("is_shaking") else SensorStatus.OK
    return Reading(timestamp=ts, value=float(magnitude), status=status)


def _environmental(raw: Mapping[str, Any], field: Optional[str], ts: int) -> Optional[Reading]:
    key = _ENVIRONMENTAL_FIELDS.get(field or "")
    if key is None:
        return None
    value = raw.get(key)
    if not _is_number(value):
        return None
    return Reading(timestamp=ts, value=float(value))


def _classification_count(raw: Mapping[str, Any], field: Optional[str], ts: int) -> Optional[Reading]:
    if not field:
        return None

    if field == "total":
        count = raw.get("total", 0)
    else:
        classes = raw.get("classes")
        if classes is None:
            count = 0
        elif isinstance(classes, Mapping):
            count = classes.get(field, 0)
        else:
            return None

    # Absent count means zero detections; present-but-garbage is invalid.
    if count is None:
        count = 0
    if not _is_number(count):
        return None
    return Reading(timestamp=ts, value=float(count), status=SensorStatus.OK)


def normalize(
    kind: ChannelKind,
    raw: Any,
    field: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> Optional[Reading]:
    """
    Normalize one raw payload into a Reading.

    Parameters
    ----------
    kind
        Sensor family of the channel the payload belongs to.
    raw
        Opaque payload as delivered by the realtime store.
    field
        Field selector for multi-value payloads (environmental and
        classification-count kinds).
    now_ms
        Receipt time used when the payload carries no timestamp. Defaults to
        the current wall-clock time.

    Returns
    -------
    Reading or None
        Normalized reading, or None if the payload is missing required fields.
    """
    if not raw or not isinstance(raw, Mapping):
        logger.debug("Skipping empty or non-mapping payload", extra={"kind": kind.value})
        return None

    ts = _timestamp_ms(raw, now_ms)

    if kind is ChannelKind.BINARY_DETECTOR:
        reading = _binary_detector(raw, ts)
    elif kind is ChannelKind.MOTION:
        reading = _motion(raw, ts)
    elif kind is ChannelKind.ENVIRONMENTAL:
        reading = _environmental(raw, field, ts)
    elif kind is ChannelKind.CLASSIFICATION_COUNT:
        reading = _classification_count(raw, field, ts)
    else:
        reading = None

    if reading is None:
        logger.debug("Skipping malformed payload", extra={"kind": kind.value, "field": field})
    return reading
