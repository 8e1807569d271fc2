from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional, Union

from sitewatch.notification.base import NotificationEvent, Notifier

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


@dataclass(frozen=True)
class NotificationThreadConfig:
    max_queue: int = 2000
    retry_count: int = 3
    retry_backoff_s: float = 0.5
    poll_timeout_s: float = 0.5


class NotificationWorkerThread:
    """
    Deliver notification events to every notifier on a background thread.

    A delivery that raises is retried ``retry_count`` times, waiting
    ``retry_backoff_s * 2**n`` before retry ``n``; after that the event is
    logged and given up for that notifier. ``emit`` never blocks.
    ``delivered`` and ``failed`` count per-notifier outcomes.
    """

    def __init__(self, notifiers: List[Notifier], cfg: Optional[NotificationThreadConfig] = None):
        self._notifiers = list(notifiers)
        self._cfg = cfg or NotificationThreadConfig()
        self._q: "queue.Queue[Union[NotificationEvent, object]]" = queue.Queue(maxsize=self._cfg.max_queue)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="notification-worker", daemon=True)
        self.delivered = 0
        self.failed = 0

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        try:
            self._q.put_nowait(_SHUTDOWN)
        except queue.Full:
            pass
        if self._thread.is_alive():
            self._thread.join(timeout=2.0)
        for notifier in self._notifiers:
            close = getattr(notifier, "close", None)
            if callable(close):
                close()

    def emit(self, event: NotificationEvent) -> None:
        try:
            self._q.put_nowait(event)
        except queue.Full:
            logger.warning("Notification queue full; dropping event", extra={"channel": event.source})

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                item = self._q.get(timeout=self._cfg.poll_timeout_s)
            except queue.Empty:
                continue
            if item is _SHUTDOWN:
                return
            for notifier in self._notifiers:
                if self._deliver(notifier, item):
                    self.delivered += 1
                else:
                    self.failed += 1

    def _deliver(self, notifier: Notifier, event: NotificationEvent) -> bool:
        attempts = 0
        while True:
            attempts += 1
            try:
                notifier.notify(event)
                return True
            except Exception as e:
                if attempts > self._cfg.retry_count:
                    logger.error(
                        "Giving up on %s after %d attempts: %r",
                        type(notifier).__name__,
                        attempts,
                        e,
                        extra={"channel": event.source},
                    )
                    return False
            if self._stop.wait(self._cfg.retry_backoff_s * (2 ** (attempts - 1))):
                return False
