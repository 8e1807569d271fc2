from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sitewatch.core.alarm.alarm_engine import AlertStateMachine
from sitewatch.core.config.channel_registry import ChannelRegistry
from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.core.state.series_buffer import DEFAULT_STALE_AFTER_MS, LiveSeriesBuffer

# (channel, value, last update, online, status)
SensorRow = Tuple[str, str, str, str, str]
# (time, channel, value, severity, acknowledged)
AlertRow = Tuple[str, str, str, str, str]


@dataclass(frozen=True)
class DashboardSummary:
    total: int
    online: int
    critical: int
    warning: int

    @property
    def normal(self) -> int:
        return self.online - self.critical - self.warning


def _hms(ts_ms: Optional[int]) -> str:
    if ts_ms is None:
        return "-"
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).strftime("%H:%M:%S")


def _channel_status(engine: AlertStateMachine, channel_id: str) -> str:
    """
    Effective status for display based on the channel's alert state:
    OK / WARN / CRITICAL
    """
    sev = engine.last_state(channel_id)
    return "OK" if sev is None else sev.value.upper()


def sensor_rows(
    buffer: LiveSeriesBuffer,
    registry: ChannelRegistry,
    engine: AlertStateMachine,
    now_ms: int,
    stale_after_ms: int = DEFAULT_STALE_AFTER_MS,
) -> List[SensorRow]:
    rows: List[SensorRow] = []

    for channel_id in buffer.channels():
        cfg = registry.get(channel_id)
        label = cfg.name if cfg is not None and cfg.name else channel_id
        unit = cfg.unit if cfg is not None else ""

        latest = buffer.latest(channel_id)
        value = "-" if latest is None else f"{latest.value:.2f}{(' ' + unit) if unit else ''}"
        online = latest is not None and buffer.is_online(channel_id, now_ms, stale_after_ms)

        rows.append(
            (
                label,
                value,
                _hms(buffer.last_ingest_ms(channel_id)),
                "ONLINE" if online else "OFFLINE",
                _channel_status(engine, channel_id),
            )
        )

    rows.sort(key=lambda r: r[0])
    return rows


def summary(
    buffer: LiveSeriesBuffer,
    engine: AlertStateMachine,
    now_ms: int,
    stale_after_ms: int = DEFAULT_STALE_AFTER_MS,
) -> DashboardSummary:
    """
    Counts for the dashboard header: channels online and in each alert state.
    """
    channels = buffer.channels()
    online = [
        c for c in channels
        if buffer.latest(c) is not None and buffer.is_online(c, now_ms, stale_after_ms)
    ]
    states: Dict[str, str] = {c: _channel_status(engine, c) for c in online}
    return DashboardSummary(
        total=len(channels),
        online=len(online),
        critical=sum(1 for s in states.values() if s == "CRITICAL"),
        warning=sum(1 for s in states.values() if s == "WARN"),
    )


def alert_rows(store: AlertRuleStore, limit: int = 100) -> List[AlertRow]:
    """
    Rows for the alert log, newest first.
    """
    rows: List[AlertRow] = []
    for e in store.events[:limit]:
        rows.append(
            (
                _hms(e.triggered_at),
                e.channel_id,
                f"{e.value:.3f}",
                e.severity.value.upper(),
                "yes" if e.acknowledged else "no",
            )
        )
    return rows
