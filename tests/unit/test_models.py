"""
Unit tests for domain models and alert events.
"""

from __future__ import annotations

import dataclasses

import pytest

from sitewatch.domain.events import AlertEvent, make_event_id
from sitewatch.domain.models import AlertOp, AlertRule, AlertSeverity, Reading, TimeRange


def test_time_range_durations() -> None:
    assert TimeRange.M15.ms == 900_000
    assert TimeRange.H1.ms == 3_600_000
    assert TimeRange.H6.ms == 21_600_000
    assert TimeRange.H24.ms == 86_400_000
    assert TimeRange("1h") is TimeRange.H1


def test_reading_is_immutable() -> None:
    r = Reading(timestamp=1, value=2.0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        r.value = 3.0  # type: ignore[misc]


def test_alert_rule_dict_roundtrip() -> None:
    rule = AlertRule("raspi/node/sound", 80.0, AlertOp.GT, 3, True)
    d = rule.to_dict()

    assert d == {"channel_id": "raspi/node/sound", "threshold": 80.0, "op": "gt", "window_sec": 3, "enabled": True}
    assert AlertRule.from_dict(d) == rule


def test_event_id_combines_channel_and_time() -> None:
    assert make_event_id("raspi/node/flame", 1767225600000) == "raspi/node/flame-1767225600000"


def test_alert_event_from_dict_defaults_acknowledged() -> None:
    ev = AlertEvent.from_dict(
        {"event_id": "c-1", "channel_id": "c", "value": 2, "triggered_at": 1, "severity": "warn"}
    )

    assert ev.acknowledged is False
    assert ev.severity is AlertSeverity.WARN
    assert ev.value == 2.0


def test_alert_event_from_dict_rejects_unknown_severity() -> None:
    with pytest.raises(ValueError):
        AlertEvent.from_dict(
            {"event_id": "c-1", "channel_id": "c", "value": 2, "triggered_at": 1, "severity": "info"}
        )
