from __future__ import annotations

import threading
from dataclasses import dataclass
from queue import Queue
from typing import Iterable, Optional

from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.notification.notification_thread import NotificationWorkerThread
from sitewatch.runtime.event_bus import EventBus
from sitewatch.runtime.notification_adapter_thread import NotificationAdapterThread
from sitewatch.runtime.readings_receiver_thread import ReadingsReceiverConfig, ReadingsReceiverThread
from sitewatch.runtime.tick_worker_thread import ChannelSelection, IncomingMessage, TickWorkerThread
from sitewatch.services.controller import MonitoringController


@dataclass(frozen=True)
class AppRuntimeConfig:
    """
    Knobs for the three runtime threads.

    Parameters
    ----------
    feed_host, feed_port
        Feed relay address.
    tick_interval_s
        Seconds between ticks of the tick worker.
    reconnect_delay_s, max_reconnect_delay_s
        Receiver backoff bounds; see :class:`ReadingsReceiverConfig`.
    connect_timeout_s
        Connect timeout for each feed connection attempt.
    incoming_queue_size
        Capacity of the receiver to tick worker queue.
    """

    feed_host: str
    feed_port: int
    tick_interval_s: float = 2.0
    reconnect_delay_s: float = 0.5
    max_reconnect_delay_s: float = 30.0
    connect_timeout_s: float = 5.0
    incoming_queue_size: int = 5000


class AppRuntime:
    """
    Starts, wires and stops the runtime threads around one stop event.

    ``ReadingsReceiverThread`` feeds decoded updates into ``incoming_q``.
    ``TickWorkerThread`` drains that queue, owns the series buffer and runs
    alert evaluation on every tick. When a notifier is configured,
    ``NotificationAdapterThread`` turns alert events from the bus into
    webhook deliveries.
    """

    def __init__(
        self,
        cfg: AppRuntimeConfig,
        controller: MonitoringController,
        bus: EventBus,
        store: AlertRuleStore,
        notifier: Optional[NotificationWorkerThread] = None,
    ):
        self._cfg = cfg
        self._controller = controller
        self._stop = threading.Event()

        self.incoming_q: "Queue[IncomingMessage]" = Queue(maxsize=cfg.incoming_queue_size)

        self._receiver = ReadingsReceiverThread(
            ReadingsReceiverConfig(
                host=cfg.feed_host,
                port=cfg.feed_port,
                reconnect_delay_s=cfg.reconnect_delay_s,
                max_reconnect_delay_s=cfg.max_reconnect_delay_s,
                connect_timeout_s=cfg.connect_timeout_s,
            ),
            incoming_q=self.incoming_q,
            stop_event=self._stop,
        )

        self._ticker = TickWorkerThread(
            controller=controller,
            incoming_q=self.incoming_q,
            stop_event=self._stop,
            tick_interval_s=cfg.tick_interval_s,
        )

        self._notify_adapter: Optional[NotificationAdapterThread] = None
        if notifier is not None:
            self._notify_adapter = NotificationAdapterThread(
                bus=bus,
                store=store,
                notifier=notifier,
                stop_event=self._stop,
            )

    def start(self) -> None:
        """
        Start the tick worker before the receiver so queued updates are
        drained from the first tick.
        """
        self._ticker.start()
        self._receiver.start()
        if self._notify_adapter is not None:
            self._notify_adapter.start()

    def set_channels(self, channel_ids: Iterable[str]) -> None:
        """
        Replace the channels of interest.

        The change is queued and applied by the tick worker, which owns the
        buffer; dropped channels lose their buffered data there.
        """
        self.incoming_q.put(ChannelSelection(tuple(channel_ids)))

    def stop(self) -> None:
        """
        Signal every thread, then join each for up to two seconds.
        """
        self._receiver.stop()
        self._ticker.stop()
        if self._notify_adapter is not None:
            self._notify_adapter.stop()

        self._receiver.join(timeout=2.0)
        self._ticker.join(timeout=2.0)
        if self._notify_adapter is not None:
            self._notify_adapter.join(timeout=2.0)
