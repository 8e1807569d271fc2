"""
Domain models and enums.

This module defines the core domain-level types used across the system:
- Reading statuses, channel kinds, alert operators and severities
- Channel configuration and normalized readings
- Alert rules and retention window ranges

These are designed as immutable (frozen) dataclasses where appropriate to
support safe sharing across layers and threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class SensorStatus(str, Enum):
    """
    Per-reading status hint derived from device-reported flags.

    This is independent of the severity computed by the alert evaluator.

    Members
    -------
    OK : str
        Device reports a normal condition.
    WARN : str
        Device reports an abnormal condition (e.g., shaking detected).
    CRITICAL : str
        Device reports a hazardous condition (e.g., flame detected).
    """

    OK = "ok"
    WARN = "warn"
    CRITICAL = "critical"


class ChannelKind(str, Enum):
    """
    Physical sensor family a channel belongs to.

    Each kind defines its own raw payload shape (see ``core.ingest.normalizer``).

    Members
    -------
    BINARY_DETECTOR : str
        Node sensors with a numeric value plus a detection flag (flame, smoke, sound).
    ENVIRONMENTAL : str
        Analog environmental sensors (temperature, humidity).
    MOTION : str
        Motion/vibration sensors reporting a magnitude and a shaking flag.
    CLASSIFICATION_COUNT : str
        Per-class object counts from a vision classifier (persons, hats).
    """

    BINARY_DETECTOR = "binary_detector"
    ENVIRONMENTAL = "environmental"
    MOTION = "motion"
    CLASSIFICATION_COUNT = "classification_count"


class AlertOp(str, Enum):
    """
    Comparison operator applied between the windowed average and the threshold.
    """

    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


class AlertSeverity(str, Enum):
    """
    Severity level for alerts.

    Members
    -------
    WARN : str
        Threshold breached within twice the hysteresis band.
    CRITICAL : str
        Threshold breached beyond twice the hysteresis band.
    """

    WARN = "warn"
    CRITICAL = "critical"


class TimeRange(str, Enum):
    """
    Retention window selector for the live series buffer.
    """

    M15 = "15m"
    H1 = "1h"
    H6 = "6h"
    H24 = "24h"

    @property
    def ms(self) -> int:
        return RANGE_TO_MS[self]


RANGE_TO_MS = {
    TimeRange.M15: 15 * 60 * 1000,
    TimeRange.H1: 60 * 60 * 1000,
    TimeRange.H6: 6 * 60 * 60 * 1000,
    TimeRange.H24: 24 * 60 * 60 * 1000,
}


@dataclass(frozen=True)
class ChannelConfig:
    """
    Static description of one logical sensor channel.

    Several channels may share one source ``path`` (e.g., temperature and
    humidity are both carried by the DHT node); ``field`` selects the value
    inside the payload.

    Parameters
    ----------
    channel_id
        Unique channel identifier (e.g., "raspi/sensors/dht/temp").
    path
        Realtime-store path whose payload feeds this channel.
    kind
        Sensor family; selects the normalization rules.
    field
        Optional field selector for multi-value payloads ("temp", "humid",
        "total", "person", ...).
    name
        Human-friendly channel name.
    unit
        Measurement unit used for display.
    """

    channel_id: str
    path: str
    kind: ChannelKind
    field: Optional[str] = None
    name: str = ""
    unit: str = ""


@dataclass(frozen=True)
class Reading:
    """
    One normalized sensor sample.

    Parameters
    ----------
    timestamp
        Sample time in integer milliseconds since the epoch.
    value
        The scalar measured value.
    status
        Optional per-reading hint computed from device-reported flags.
    """

    timestamp: int
    value: float
    status: Optional[SensorStatus] = None


@dataclass(frozen=True)
class AlertRule:
    """
    Threshold rule for a single channel.

    Parameters
    ----------
    channel_id
        Channel the rule applies to. At most one rule exists per channel.
    threshold
        Threshold compared against the windowed average.
    op
        Comparison operator.
    window_sec
        Averaging window in seconds (1..3600).
    enabled
        Disabled rules never evaluate and never emit events.
    """

    channel_id: str
    threshold: float
    op: AlertOp
    window_sec: int
    enabled: bool

    def to_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "threshold": self.threshold,
            "op": self.op.value,
            "window_sec": self.window_sec,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertRule":
        return cls(
            channel_id=str(data["channel_id"]),
            threshold=float(data["threshold"]),
            op=AlertOp(data["op"]),
            window_sec=int(data["window_sec"]),
            enabled=bool(data["enabled"]),
        )


@dataclass(frozen=True)
class PathUpdate:
    """
    One "value changed at path" notification from the realtime store.

    Parameters
    ----------
    path
        Store path whose value changed (e.g., "raspi/sensors/dht").
    data
        New raw value at that path; opaque until normalized per channel.
    """

    path: str
    data: Any
