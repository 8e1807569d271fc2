from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Full, Queue
from typing import Optional

from sitewatch.runtime.tick_worker_thread import IncomingMessage
from sitewatch.transport.tcp_client import TCPNDJSONClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadingsReceiverConfig:
    """
    Feed relay connection and reconnect policy.

    Parameters
    ----------
    host, port
        Feed relay address.
    reconnect_delay_s
        First delay after a failed or dropped connection. Each further
        consecutive failure doubles it, up to ``max_reconnect_delay_s``.
    max_reconnect_delay_s
        Upper bound for the reconnect delay.
    connect_timeout_s
        Connect timeout passed to the client.
    """

    host: str
    port: int
    reconnect_delay_s: float = 0.5
    max_reconnect_delay_s: float = 30.0
    connect_timeout_s: float = 5.0


class ReadingsReceiverThread:
    """
    I/O thread that keeps a connection to the feed relay open and forwards
    every decoded :class:`~sitewatch.domain.models.PathUpdate` to the tick
    worker's incoming queue.

    The receiver never normalizes or buffers readings itself. When the
    incoming queue is full, the newest update is dropped with a warning so
    that a slow tick worker cannot stall the socket.

    ``stop`` sets the shared stop event and closes the live socket, which
    unblocks a pending ``recv``.
    """

    def __init__(
        self,
        cfg: ReadingsReceiverConfig,
        incoming_q: "Queue[IncomingMessage]",
        stop_event: threading.Event,
    ):
        self._cfg = cfg
        self._q = incoming_q
        self._stop = stop_event
        self._thread = threading.Thread(target=self._run, name="readings-receiver", daemon=True)
        self._client: Optional[TCPNDJSONClient] = None
        self.forwarded = 0
        self.dropped = 0

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        client = self._client
        if client is not None:
            client.close()

    def join(self, timeout: Optional[float] = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _stream_once(self) -> int:
        """
        Connect, forward updates until the stream ends, and return how many
        updates were forwarded.
        """
        client = TCPNDJSONClient(
            host=self._cfg.host,
            port=self._cfg.port,
            timeout_s=self._cfg.connect_timeout_s,
        )
        self._client = client
        forwarded = 0
        try:
            client.connect()
            for update in client.messages():
                if self._stop.is_set():
                    break
                try:
                    self._q.put_nowait(update)
                except Full:
                    self.dropped += 1
                    logger.warning("Incoming queue full; dropping update", extra={"path": update.path})
                    continue
                forwarded += 1
                self.forwarded += 1
        finally:
            client.close()
            self._client = None
        return forwarded

    def _run(self) -> None:
        delay = self._cfg.reconnect_delay_s
        while not self._stop.is_set():
            try:
                forwarded = self._stream_once()
            except (OSError, UnicodeDecodeError) as e:
                if self._stop.is_set():
                    break
                logger.warning("Feed connection lost: %r (retry in %.1fs)", e, delay)
                forwarded = 0

            if self._stop.is_set():
                break
            if forwarded:
                # A healthy session resets the backoff.
                delay = self._cfg.reconnect_delay_s
            self._stop.wait(delay)
            if not forwarded:
                delay = min(delay * 2, self._cfg.max_reconnect_delay_s)
