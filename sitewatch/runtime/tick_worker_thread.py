from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, Optional, Tuple, Union

from sitewatch.domain.models import PathUpdate
from sitewatch.services.controller import MonitoringController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelSelection:
    """
    Control message replacing the set of channels of interest.
    """

    channel_ids: Tuple[str, ...]


IncomingMessage = Union[PathUpdate, ChannelSelection]


class TickWorkerThread:
    """
    Worker thread that owns the live series buffer.

    Responsibilities
    ----------------
    - Drain path updates from the incoming queue and hand them to
      `MonitoringController.handle_update(...)` (ingest only, never sorts).
    - Every ``tick_interval_s`` call `MonitoringController.tick(...)`, which
      merges/sorts/prunes the buffer and runs the alert state machine.
    - Apply channel selection changes between ticks.

    Concurrency Model
    -----------------
    - This is the only thread that touches the buffer, so every buffer
      mutation is serialized without a lock.
    - The tick cadence is independent of arrival bursts: the queue is polled
      with a timeout bounded by the time left until the next tick.
    - Exceptions in controller handling are caught and logged to avoid killing the thread.

    Parameters
    ----------
    controller
        Monitoring controller used to ingest updates and run ticks.
    incoming_q
        Queue of path updates and channel selections.
    stop_event
        Thread stop signal. When set, the worker exits its loop.
    tick_interval_s
        Tick cadence in seconds.
    clock
        Monotonic clock used for scheduling (injectable for tests).
    """

    def __init__(
        self,
        controller: MonitoringController,
        incoming_q: "Queue[IncomingMessage]",
        stop_event: threading.Event,
        tick_interval_s: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._controller = controller
        self._q = incoming_q
        self._stop = stop_event
        self._interval = tick_interval_s
        self._clock = clock
        self._thread = threading.Thread(target=self._run, name="tick-worker", daemon=True)
        self.tick_count = 0

    def start(self) -> None:
        """
        Start the worker thread if it is not already running.
        """
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        """
        Signal the worker thread to stop.
        """
        self._stop.set()

    def join(self, timeout: Optional[float] = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _handle(self, msg: IncomingMessage) -> None:
        if isinstance(msg, ChannelSelection):
            self._controller.set_channels(msg.channel_ids)
        else:
            self._controller.handle_update(msg)

    def _tick(self) -> None:
        try:
            self._controller.tick()
        except Exception:
            logger.exception("Tick failed")
        self.tick_count += 1

    def _run(self) -> None:
        """
        Worker loop: drain updates until the next tick is due, then tick.
        """
        next_tick = self._clock() + self._interval
        while not self._stop.is_set():
            remaining = next_tick - self._clock()
            if remaining <= 0:
                self._tick()
                next_tick += self._interval
                # Don't replay missed ticks after a stall.
                if next_tick <= self._clock():
                    next_tick = self._clock() + self._interval
                continue

            try:
                msg = self._q.get(timeout=min(remaining, 0.5))
            except Empty:
                continue

            try:
                self._handle(msg)
            except Exception:
                logger.exception("Incoming message handling failed")
