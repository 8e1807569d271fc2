"""
Alert event domain models.

An `AlertEvent` records *what happened* at a specific time: a channel entered
an alert, or its alert changed severity. Resolution is silent and produces no
event.

Events are typically used for:
- the dashboard alert log
- outbound notifications
- acknowledgment tracking
"""

from __future__ import annotations

from dataclasses import dataclass

from sitewatch.domain.models import AlertSeverity


def make_event_id(channel_id: str, triggered_at: int) -> str:
    """Event ids combine the channel id and the trigger time in ms."""
    return f"{channel_id}-{triggered_at}"


@dataclass(frozen=True)
class AlertEvent:
    """
    Alert event emitted on a state transition.

    'AlertEvent' is immutable; the only field that changes over its lifetime
    is ``acknowledged``, and the rule store does that by replacing the stored
    instance with an updated copy.

    Parameters
    ----------
    event_id
        Unique id derived from channel id and trigger time.
    channel_id
        Channel that raised the alert.
    value
        Most recent reading value at trigger time (0.0 if none).
    triggered_at
        Trigger time in ms since the epoch.
    severity
        Severity entered by this transition.
    acknowledged
        Whether a user acknowledged the event.
    """

    event_id: str
    channel_id: str
    value: float
    triggered_at: int
    severity: AlertSeverity
    acknowledged: bool = False

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "channel_id": self.channel_id,
            "value": self.value,
            "triggered_at": self.triggered_at,
            "severity": self.severity.value,
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AlertEvent":
        return cls(
            event_id=str(data["event_id"]),
            channel_id=str(data["channel_id"]),
            value=float(data["value"]),
            triggered_at=int(data["triggered_at"]),
            severity=AlertSeverity(data["severity"]),
            acknowledged=bool(data.get("acknowledged", False)),
        )
