from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Iterator, Optional

from sitewatch.domain.models import PathUpdate
from sitewatch.transport.ndjson import decode_message

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9009
DEFAULT_TIMEOUT_S = 5.0
MAX_LINE_BYTES = 1 << 20


@dataclass
class TCPNDJSONClient:
    """
    Feed relay client: one realtime-store change notification per NDJSON line.

    The relay stands in for the realtime database SDK. Each line carries a
    ``{"type": "value", "path": ..., "data": ...}`` object that is decoded
    into a :class:`~sitewatch.domain.models.PathUpdate`. Payload contents are
    left opaque here; normalization happens per channel in the controller.

    Parameters
    ----------
    host, port
        Relay address.
    timeout_s
        Connect timeout. Once connected the socket blocks indefinitely,
        since sensors may stay quiet for long stretches.
    max_line_bytes
        Lines longer than this are discarded instead of growing the receive
        buffer without bound.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout_s: float = DEFAULT_TIMEOUT_S
    max_line_bytes: int = MAX_LINE_BYTES

    _sock: Optional[socket.socket] = field(default=None, repr=False)

    def connect(self) -> None:
        """
        Open the connection to the relay.

        Raises
        ------
        OSError
            If the relay is unreachable or the connect times out.
        """
        sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
        sock.settimeout(None)
        self._sock = sock
        logger.info("Connected to feed at %s:%s", self.host, self.port)

    def lines(self) -> Iterator[str]:
        """
        Yield non-empty lines, decoded as UTF-8 and stripped.

        Raises
        ------
        RuntimeError
            If called before :meth:`connect`.
        ConnectionError
            When the relay closes the connection.
        UnicodeDecodeError
            If a line is not valid UTF-8.
        """
        if self._sock is None:
            raise RuntimeError("Not connected")

        pending = bytearray()
        discarding = False
        while True:
            chunk = self._sock.recv(4096)
            if not chunk:
                raise ConnectionError("Server closed connection")
            pending += chunk

            while True:
                nl = pending.find(b"\n")
                if nl < 0:
                    break
                raw = bytes(pending[:nl])
                del pending[: nl + 1]
                if discarding:
                    # tail of an oversized line
                    discarding = False
                    continue
                text = raw.decode("utf-8").strip()
                if text:
                    yield text

            if len(pending) > self.max_line_bytes:
                logger.warning("Dropping oversized line (%d bytes buffered)", len(pending))
                pending.clear()
                discarding = True

    def messages(self) -> Iterator[PathUpdate]:
        """
        Yield decoded path updates; undecodable lines are logged and skipped.
        """
        for line in self.lines():
            try:
                update = decode_message(line)
            except (ValueError, KeyError) as e:
                logger.warning("Bad line %r: %r", line[:200], e)
                continue
            yield update

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass
