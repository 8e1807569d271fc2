from __future__ import annotations

import logging
import threading
from queue import Empty
from typing import Optional

from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.domain.events import AlertEvent
from sitewatch.notification.base import NotificationEvent
from sitewatch.notification.notification_thread import NotificationWorkerThread
from sitewatch.notification.payload import build_alert_webhook_payload, iso_ms
from sitewatch.runtime.event_bus import EventBus

logger = logging.getLogger(__name__)


class NotificationAdapterThread:
    """
    Forward alert events from the bus to the notification worker.

    Each :class:`AlertEvent` is paired with the current event log totals from
    ``store`` and emitted as a ``"alert_event"`` notification. A payload
    failure is logged and the event skipped.

    Parameters
    ----------
    bus
        Event bus providing the AlertEvent queue.
    store
        Source of the event log totals in the payload.
    notifier
        Worker that performs delivery.
    stop_event
        Shared runtime stop event.
    """

    def __init__(
        self,
        bus: EventBus,
        store: AlertRuleStore,
        notifier: NotificationWorkerThread,
        stop_event: threading.Event,
    ):
        self._bus = bus
        self._store = store
        self._notifier = notifier
        self._stop = stop_event
        self._thread = threading.Thread(target=self._run, name="notification-adapter", daemon=True)

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                ev: AlertEvent = self._bus.alert_events_q.get(timeout=0.5)
            except Empty:
                continue

            try:
                payload = build_alert_webhook_payload(self._store, ev)
                self._notifier.emit(
                    NotificationEvent(
                        type="alert_event",
                        payload=payload,
                        severity=ev.severity.value,
                        source=ev.channel_id,
                        ts=iso_ms(ev.triggered_at),
                    )
                )
            except Exception:
                logger.exception("Notification adapter failed", extra={"event_id": ev.event_id})
