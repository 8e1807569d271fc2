"""
Unit tests for sitewatch.core.alarm.rule_resolution.resolve_rule.
"""

from __future__ import annotations

from sitewatch.config.settings import ALERT_DEFAULTS, GENERIC_DEFAULT
from sitewatch.core.alarm.rule_resolution import resolve_rule
from sitewatch.domain.models import AlertOp, AlertRule


def test_explicit_rule_wins() -> None:
    explicit = AlertRule("raspi/node/smoke", 10.0, AlertOp.LT, 60, False)
    assert resolve_rule("raspi/node/smoke", explicit) is explicit


def test_channel_default_is_used_without_explicit_rule() -> None:
    rule = resolve_rule("raspi/node/smoke", None)
    expected = ALERT_DEFAULTS["raspi/node/smoke"]

    assert rule.channel_id == "raspi/node/smoke"
    assert rule.threshold == expected["threshold"]
    assert rule.op is AlertOp.GT
    assert rule.window_sec == expected["window_sec"]
    assert rule.enabled is True


def test_unknown_channel_gets_generic_default() -> None:
    rule = resolve_rule("some/new/channel", None)

    assert rule == AlertRule(
        channel_id="some/new/channel",
        threshold=GENERIC_DEFAULT["threshold"],
        op=GENERIC_DEFAULT["op"],
        window_sec=GENERIC_DEFAULT["window_sec"],
        enabled=False,
    )


def test_partial_default_entry_is_filled_from_generic() -> None:
    rule = resolve_rule("c", None, defaults={"c": {"threshold": 12.0, "op": "lt"}})

    assert rule.threshold == 12.0
    assert rule.op is AlertOp.LT
    assert rule.window_sec == GENERIC_DEFAULT["window_sec"]
    assert rule.enabled is GENERIC_DEFAULT["enabled"]


def test_custom_table_replaces_built_in_table() -> None:
    rule = resolve_rule("raspi/node/smoke", None, defaults={})
    assert rule.enabled is False
    assert rule.threshold == 0.0
