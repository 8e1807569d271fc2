"""
Unit tests for sitewatch.bootstrap wiring.

The runtime is built but never started, so no sockets or threads are used.
"""

from __future__ import annotations

import pytest

from sitewatch.bootstrap import build_app_system, build_notifier, build_rule_store
from sitewatch.core.config.rule_form import RuleValidationError
from sitewatch.core.config.yaml_config import parse_app_config
from sitewatch.core.state.persistence import JsonStatePersistence
from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertOp, AlertRule, AlertSeverity


def test_configured_form_limits_reach_the_controller() -> None:
    cfg = parse_app_config({"alerts": {"form": {"window_min": 5, "threshold_max": 50}}})

    wiring = build_app_system(cfg=cfg)

    assert wiring.controller.form_limits.window_min == 5
    with pytest.raises(RuleValidationError):
        wiring.controller.configure_rule("raspi/node/flame", {"threshold": 60, "op": "gt", "window_sec": 5, "enabled": True})


def test_build_app_system_subscribes_configured_channels() -> None:
    cfg = parse_app_config({"subscribe": ["raspi/node/flame", "raspi/sensors/dht/temp", "bogus"]})

    wiring = build_app_system(cfg=cfg)

    assert wiring.controller.subscriptions.subscribed() == {"raspi/node/flame", "raspi/sensors/dht/temp"}
    assert sorted(wiring.buffer.channels()) == ["raspi/node/flame", "raspi/sensors/dht/temp"]
    assert wiring.notifier is None
    assert wiring.controller.bus is None
    assert wiring.engine.defaults == cfg.alerts.defaults
    assert wiring.controller.form_limits == cfg.alerts.form


def test_build_rule_store_restores_persisted_state(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    rule = AlertRule("raspi/node/smoke", 900.0, AlertOp.GT, 5, True)
    event = AlertEvent("raspi/node/smoke-1", "raspi/node/smoke", 950.0, 1, AlertSeverity.WARN)
    JsonStatePersistence(path).save({rule.channel_id: rule}, [event])

    store = build_rule_store(parse_app_config({"alerts": {"state_path": str(path)}}))

    assert store.get_rule("raspi/node/smoke") == rule
    assert store.events == [event]

    store.remove_rule("raspi/node/smoke")
    assert JsonStatePersistence(path).load()[0] == {}


def test_build_rule_store_without_state_path_is_memory_only() -> None:
    store = build_rule_store(parse_app_config({}))
    assert store.persist is None


def test_build_notifier_adds_bearer_prefix() -> None:
    cfg = parse_app_config({"webhook": {"url": "http://hooks.local/a", "auth_header": "s3cret"}})

    worker = build_notifier(cfg)

    assert worker is not None
    webhook = worker._notifiers[0]
    assert webhook._cfg.auth_header == "Bearer s3cret"
    assert webhook._cfg.url == "http://hooks.local/a"


def test_build_notifier_keeps_existing_bearer_prefix() -> None:
    cfg = parse_app_config({"webhook": {"url": "http://x", "auth_header": "Bearer abc"}})
    assert build_notifier(cfg)._notifiers[0]._cfg.auth_header == "Bearer abc"
