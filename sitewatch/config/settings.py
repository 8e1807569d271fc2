from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from sitewatch.domain.models import AlertOp, ChannelConfig, ChannelKind, TimeRange

# Partial rules per channel; missing fields come from GENERIC_DEFAULT.
ALERT_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "raspi/sensors/dht/temp": {"threshold": 30.0, "op": AlertOp.GT, "window_sec": 5, "enabled": True},
    "raspi/sensors/dht/humid": {"threshold": 70.0, "op": AlertOp.GT, "window_sec": 10, "enabled": False},
    "raspi/node/sound": {"threshold": 80.0, "op": AlertOp.GT, "window_sec": 3, "enabled": True},
    "raspi/node/flame": {"threshold": 0.0, "op": AlertOp.GT, "window_sec": 1, "enabled": True},
    "raspi/node/smoke": {"threshold": 1500.0, "op": AlertOp.GT, "window_sec": 5, "enabled": True},
    "raspi/sensors/gyro": {"threshold": 2.0, "op": AlertOp.GT, "window_sec": 2, "enabled": False},
}

# Fallback when a channel has neither a user rule nor a default.
GENERIC_DEFAULT: Dict[str, Any] = {
    "threshold": 0.0,
    "op": AlertOp.GT,
    "window_sec": 5,
    "enabled": False,
}


@dataclass(frozen=True)
class Settings:
    """
    Central place for built-in defaults.
    """

    # How often the buffer is merged and alerts are evaluated
    tick_interval_s: float = 2.0

    # How much history each channel keeps
    time_range: TimeRange = TimeRange.M15

    # Channels with no ingest for this long are reported offline
    stale_after_ms: int = 60_000

    # Alert log capacity
    max_events: int = 100

    def default_channels(self) -> List[ChannelConfig]:
        """
        Returns the channels published by the site's sensor node.
        """
        return [
            ChannelConfig("raspi/node/flame", "raspi/node/flame", ChannelKind.BINARY_DETECTOR,
                          name="Flame", unit=""),
            ChannelConfig("raspi/node/smoke", "raspi/node/smoke", ChannelKind.BINARY_DETECTOR,
                          name="Smoke", unit="ppm"),
            ChannelConfig("raspi/node/sound", "raspi/node/sound", ChannelKind.BINARY_DETECTOR,
                          name="Sound", unit="dB"),
            ChannelConfig("raspi/sensors/dht/temp", "raspi/sensors/dht", ChannelKind.ENVIRONMENTAL,
                          field="temp", name="Temperature", unit="C"),
            ChannelConfig("raspi/sensors/dht/humid", "raspi/sensors/dht", ChannelKind.ENVIRONMENTAL,
                          field="humid", name="Humidity", unit="%"),
            ChannelConfig("raspi/sensors/gyro", "raspi/sensors/gyro", ChannelKind.MOTION,
                          name="Vibration", unit="g"),
            ChannelConfig("raspi/ppe/total", "raspi/ppe", ChannelKind.CLASSIFICATION_COUNT,
                          field="total", name="Detections", unit=""),
            ChannelConfig("raspi/ppe/hat", "raspi/ppe", ChannelKind.CLASSIFICATION_COUNT,
                          field="hat", name="Hard hats", unit=""),
            ChannelConfig("raspi/ppe/person", "raspi/ppe", ChannelKind.CLASSIFICATION_COUNT,
                          field="person", name="Persons", unit=""),
        ]
