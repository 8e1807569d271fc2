from __future__ import annotations

import logging
from dataclasses import dataclass, field
from queue import Full, Queue

from sitewatch.domain.events import AlertEvent

logger = logging.getLogger(__name__)


@dataclass
class EventBus:
    """
    In-process event bus for alert events using a thread-safe queue.

    The bus provides a simple producer/consumer mechanism:
    - Producers publish :class:`~sitewatch.domain.events.AlertEvent` via :meth:`publish_alert`.
    - Consumers (e.g., adapter threads) read from :attr:`alert_events_q`.

    Backpressure Policy
    -------------------
    If the queue is full, events are dropped (best-effort). This prevents
    notification infrastructure overload from blocking the tick worker.

    Attributes
    ----------
    alert_events_q
        Bounded queue of alert events. Consumers should drain this queue in a loop.
    """

    alert_events_q: "Queue[AlertEvent]" = field(default_factory=lambda: Queue(maxsize=5000))

    def publish_alert(self, ev: AlertEvent) -> None:
        """
        Publish an alert event to the queue (non-blocking).

        Parameters
        ----------
        ev
            AlertEvent to publish.
        """
        try:
            self.alert_events_q.put_nowait(ev)
        except Full:
            logger.warning("Event bus full; dropping alert", extra={"event_id": ev.event_id})
