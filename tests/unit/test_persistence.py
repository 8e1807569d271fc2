"""
Unit tests for sitewatch.core.state.persistence.JsonStatePersistence.

Uses pytest's tmp_path so every test gets its own state file.
"""

from __future__ import annotations

import json

from sitewatch.core.state.persistence import DEFAULT_NAMESPACE, JsonStatePersistence
from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertOp, AlertRule, AlertSeverity

NOW = 1_767_225_600_000


def _event() -> AlertEvent:
    return AlertEvent(
        event_id=f"raspi/node/flame-{NOW}",
        channel_id="raspi/node/flame",
        value=1.0,
        triggered_at=NOW,
        severity=AlertSeverity.CRITICAL,
        acknowledged=True,
    )


def test_save_then_load_restores_rules_and_events(tmp_path) -> None:
    p = JsonStatePersistence(tmp_path / "state" / "alerts.json")
    rule = AlertRule("raspi/node/smoke", 900.0, AlertOp.GTE, 30, True)

    p.save({rule.channel_id: rule}, [_event()])
    rules, events = p.load()

    assert rules == {rule.channel_id: rule}
    assert events == [_event()]


def test_document_is_namespaced(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    JsonStatePersistence(path).save({}, [_event()])

    doc = json.loads(path.read_text(encoding="utf-8"))

    assert list(doc) == [DEFAULT_NAMESPACE] == ["alerts-store"]
    assert doc["alerts-store"]["events"][0]["severity"] == "critical"


def test_other_namespaces_in_file_are_preserved(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    path.write_text(json.dumps({"other": {"keep": 1}}), encoding="utf-8")

    JsonStatePersistence(path).save({}, [])

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["other"] == {"keep": 1}


def test_missing_file_loads_empty(tmp_path) -> None:
    assert JsonStatePersistence(tmp_path / "nope.json").load() == ({}, [])


def test_corrupt_json_loads_empty(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonStatePersistence(path).load() == ({}, [])


def test_invalid_entries_load_empty(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    path.write_text(
        json.dumps({"alerts-store": {"rules": {"c": {"threshold": 1}}, "events": []}}),
        encoding="utf-8",
    )

    assert JsonStatePersistence(path).load() == ({}, [])


def test_store_persists_through_hook(tmp_path) -> None:
    """
    Wiring the persistence into the store survives a simulated restart.
    """
    p = JsonStatePersistence(tmp_path / "alerts.json")
    store = AlertRuleStore(persist=p.save)
    store.set_rule(AlertRule("c", 5.0, AlertOp.LT, 10, True))
    store.add_event(_event())

    restarted = AlertRuleStore(persist=p.save)
    restarted.load(*p.load())

    assert restarted.get_rule("c") == AlertRule("c", 5.0, AlertOp.LT, 10, True)
    assert restarted.events == [_event()]
