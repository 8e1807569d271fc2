from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class NotificationEvent:
    """
    One outbound message for the notification layer.

    Parameters
    ----------
    type
        Message kind, e.g. ``"alert_event"``.
    payload
        JSON-serializable body handed to each notifier as is.
    severity
        ``"warn"`` or ``"critical"`` for alert messages.
    source
        Channel id the message concerns.
    ts
        ISO-8601 time of the underlying alert.
    """

    type: str
    payload: Dict[str, Any]
    severity: Optional[str] = None
    source: Optional[str] = None
    ts: Optional[str] = None


class Notifier(Protocol):
    """Anything with ``notify(event)``; may also expose ``close()``."""

    def notify(self, event: NotificationEvent) -> None:
        ...
