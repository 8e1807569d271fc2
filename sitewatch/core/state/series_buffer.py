from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from sitewatch.domain.clock import now_ms
from sitewatch.domain.models import Reading

Series = Tuple[Reading, ...]

DEFAULT_STALE_AFTER_MS = 60_000


@dataclass
class _ChannelBuffer:
    pending: Deque[Reading] = field(default_factory=deque)
    series: Series = ()
    last_ingest_ms: Optional[int] = None


@dataclass
class LiveSeriesBuffer:
    """
    Per-channel, time-windowed, chronologically ordered reading series.

    Readings arrive out of order and in bursts. ``ingest`` only appends them
    to a per-channel pending queue; the visible series changes only inside
    ``tick``, which merges, sorts and prunes every channel.

    Notes
    -----
    - The buffer is single-owner: ``ingest`` and ``tick`` must be called from
      the same thread (the runtime's tick worker). Readers on other threads
      only ever see the tuple published by the last completed tick.
    - Series tuples are immutable snapshots; callers can keep them without
      sharing state with the buffer.

    Attributes
    ----------
    _channels
        Mapping from channel id -> pending queue, published series and
        last-ingest wall-clock time.
    """

    _channels: Dict[str, _ChannelBuffer] = field(default_factory=dict)

    def ingest(self, channel_id: str, reading: Reading, received_at_ms: Optional[int] = None) -> None:
        """
        Queue a reading for the next tick.

        Parameters
        ----------
        channel_id
            Channel the reading belongs to.
        reading
            Normalized reading. Arrival order need not match timestamp order.
        received_at_ms
            Wall-clock receipt time, used for liveness checks. Defaults to now.
        """
        buf = self._channels.get(channel_id)
        if buf is None:
            buf = self._channels[channel_id] = _ChannelBuffer()
        buf.pending.append(reading)
        buf.last_ingest_ms = received_at_ms if received_at_ms is not None else now_ms()

    def tick(self, now_ms: int, window_ms: int) -> None:
        """
        Merge pending readings, sort by timestamp and prune the window.

        Parameters
        ----------
        now_ms
            Reference time for the retention window.
        window_ms
            Retention window. Readings with ``now_ms - timestamp > window_ms``
            are dropped.

        Notes
        -----
        Prunes even when nothing is pending, so a silent stream ages out.
        The sort is stable: equal timestamps keep arrival order.
        """
        for buf in self._channels.values():
            merged: List[Reading] = list(buf.series)
            while buf.pending:
                merged.append(buf.pending.popleft())
            merged.sort(key=lambda r: r.timestamp)
            buf.series = tuple(r for r in merged if now_ms - r.timestamp <= window_ms)

    def series(self, channel_id: str) -> Series:
        """
        Return the current series for a channel.

        Returns
        -------
        tuple of Reading
            Snapshot of the last merged series; empty for unknown channels.
        """
        buf = self._channels.get(channel_id)
        return buf.series if buf is not None else ()

    def latest(self, channel_id: str) -> Optional[Reading]:
        """
        Most recent reading in the current series, or None if it is empty.
        """
        s = self.series(channel_id)
        return s[-1] if s else None

    def last_ingest_ms(self, channel_id: str) -> Optional[int]:
        """
        Wall-clock time of the last ingest for a channel.

        This is receipt time, distinct from the latest reading's timestamp.
        """
        buf = self._channels.get(channel_id)
        return buf.last_ingest_ms if buf is not None else None

    def is_online(self, channel_id: str, now_ms: int, stale_after_ms: int = DEFAULT_STALE_AFTER_MS) -> bool:
        """
        Whether the channel received data within ``stale_after_ms``.
        """
        last = self.last_ingest_ms(channel_id)
        return last is not None and now_ms - last < stale_after_ms

    def pending_count(self, channel_id: str) -> int:
        buf = self._channels.get(channel_id)
        return len(buf.pending) if buf is not None else 0

    def channels(self) -> List[str]:
        return list(self._channels.keys())

    def track(self, channel_id: str) -> None:
        """Register a channel so it shows up (empty) before its first reading."""
        self._channels.setdefault(channel_id, _ChannelBuffer())

    def discard(self, channel_id: str) -> None:
        """
        Drop all buffered data for a channel that is no longer of interest.
        """
        self._channels.pop(channel_id, None)
