"""
Unit tests for sitewatch.runtime.event_bus.EventBus.
"""

from __future__ import annotations

from queue import Queue

from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertSeverity
from sitewatch.runtime.event_bus import EventBus


def _ev(i: int) -> AlertEvent:
    return AlertEvent(event_id=f"c-{i}", channel_id="c", value=1.0, triggered_at=i, severity=AlertSeverity.WARN)


def test_publish_enqueues_in_order() -> None:
    bus = EventBus()
    bus.publish_alert(_ev(1))
    bus.publish_alert(_ev(2))

    assert bus.alert_events_q.get_nowait().event_id == "c-1"
    assert bus.alert_events_q.get_nowait().event_id == "c-2"


def test_full_queue_drops_without_raising(caplog) -> None:
    """
    Backpressure policy: a full bus drops new events and never blocks.
    """
    bus = EventBus(alert_events_q=Queue(maxsize=1))
    bus.publish_alert(_ev(1))

    with caplog.at_level("WARNING", logger="sitewatch.runtime.event_bus"):
        bus.publish_alert(_ev(2))

    assert bus.alert_events_q.qsize() == 1
    assert bus.alert_events_q.get_nowait().event_id == "c-1"
    assert any(getattr(r, "event_id", None) == "c-2" for r in caplog.records)
