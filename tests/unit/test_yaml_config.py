"""
Unit tests for sitewatch.core.config.yaml_config.

Validates:
- built-in defaults when sections are omitted
- channel, transport, webhook and alert sections are parsed into typed config
- default-rule overrides merge over the built-in entries
- missing or invalid values raise ValueError
"""

from __future__ import annotations

import pytest

from sitewatch.config.settings import ALERT_DEFAULTS
from sitewatch.core.config.yaml_config import load_app_config, parse_app_config
from sitewatch.domain.models import AlertOp, ChannelKind, TimeRange


def test_empty_mapping_uses_defaults() -> None:
    cfg = parse_app_config({})

    assert cfg.tick_interval_s == 2.0
    assert cfg.time_range is TimeRange.M15
    assert cfg.stale_after_ms == 60_000
    assert len(cfg.channels) == 9
    assert cfg.subscribe == [c.channel_id for c in cfg.channels]
    assert cfg.transport.host == "127.0.0.1"
    assert cfg.webhook is None
    assert cfg.alerts.state_path is None
    assert cfg.alerts.max_events == 100
    assert cfg.alerts.defaults == ALERT_DEFAULTS
    assert cfg.log_level == "INFO"


def test_full_config_is_parsed() -> None:
    raw = {
        "tick_interval_s": 1,
        "time_range": "6h",
        "stale_after_ms": 30000,
        "channels": [
            {"channel_id": "site/gyro", "kind": "motion", "name": "Gyro", "unit": "g"},
            {"channel_id": "site/dht/temp", "path": "site/dht", "kind": "environmental", "field": "temp"},
        ],
        "subscribe": ["site/gyro"],
        "transport": {"tcp_client": {"host": "10.0.0.5", "port": 7000, "timeout_s": 1, "reconnect_delay_s": 2}},
        "webhook": {"url": "https://hooks.example/alerts", "auth_header": "secret", "verify_tls": False},
        "alerts": {
            "state_path": "./state/alerts.json",
            "max_events": 50,
            "form": {"threshold_min": None, "window_max": 600},
        },
        "logging": {"level": "debug"},
    }

    cfg = parse_app_config(raw)

    assert cfg.tick_interval_s == 1.0
    assert cfg.time_range is TimeRange.H6
    assert cfg.stale_after_ms == 30000
    assert [c.channel_id for c in cfg.channels] == ["site/gyro", "site/dht/temp"]
    assert cfg.channels[0].path == "site/gyro"
    assert cfg.channels[1].kind is ChannelKind.ENVIRONMENTAL
    assert cfg.channels[1].field == "temp"
    assert cfg.subscribe == ["site/gyro"]
    assert (cfg.transport.host, cfg.transport.port) == ("10.0.0.5", 7000)
    assert cfg.transport.reconnect_delay_s == 2.0
    assert cfg.transport.max_reconnect_delay_s == 30.0
    assert cfg.webhook is not None
    assert cfg.webhook.url == "https://hooks.example/alerts"
    assert cfg.webhook.verify_tls is False
    assert cfg.alerts.state_path == "./state/alerts.json"
    assert cfg.alerts.max_events == 50
    assert cfg.alerts.form.threshold_min is None
    assert cfg.alerts.form.threshold_max == 10000.0
    assert cfg.alerts.form.window_max == 600
    assert cfg.log_level == "DEBUG"


def test_default_rule_override_merges_with_built_in_entry() -> None:
    cfg = parse_app_config({"alerts": {"defaults": {"raspi/sensors/dht/humid": {"enabled": True}}}})

    humid = cfg.alerts.defaults["raspi/sensors/dht/humid"]
    assert humid["enabled"] is True
    assert humid["threshold"] == 70.0
    assert humid["window_sec"] == 10


def test_default_rule_for_new_channel() -> None:
    cfg = parse_app_config({"alerts": {"defaults": {"site/x": {"threshold": 3, "op": "lt"}}}})

    assert cfg.alerts.defaults["site/x"] == {"threshold": 3.0, "op": AlertOp.LT}


def test_missing_channel_key_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Missing required config key"):
        parse_app_config({"channels": [{"kind": "motion"}]})


@pytest.mark.parametrize(
    "raw",
    [
        {"time_range": "2d"},
        {"tick_interval_s": 0},
        {"channels": [{"channel_id": "c", "kind": "laser"}]},
        {"webhook": {"auth_header": "x"}},
        {"transport": {"tcp_client": {"reconnect_delay_s": 60}}},
    ],
)
def test_invalid_values_raise_value_error(raw) -> None:
    with pytest.raises(ValueError):
        parse_app_config(raw)


@pytest.mark.parametrize(
    "raw",
    [
        {"transport": None, "logging": None, "webhook": None},
        {"transport": {"tcp_client": None}, "alerts": {"form": None, "defaults": None}},
        {"alerts": None},
    ],
)
def test_section_without_body_uses_defaults(raw) -> None:
    cfg = parse_app_config(raw)

    assert cfg.transport.port == 9009
    assert cfg.webhook is None
    assert cfg.alerts.form.window_max == 3600
    assert cfg.log_level == "INFO"


def test_empty_sections_in_yaml_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("transport:\n  tcp_client:\nalerts:\nlogging:\nwebhook:\n", encoding="utf-8")

    cfg = load_app_config(str(path))

    assert (cfg.transport.host, cfg.alerts.max_events, cfg.webhook) == ("127.0.0.1", 100, None)


def test_non_mapping_section_is_rejected() -> None:
    with pytest.raises(ValueError, match="transport must be a mapping"):
        parse_app_config({"transport": "127.0.0.1:9009"})


def test_load_app_config_from_file(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("time_range: 1h\nsubscribe: [raspi/node/flame]\n", encoding="utf-8")

    cfg = load_app_config(str(path))

    assert cfg.time_range is TimeRange.H1
    assert cfg.subscribe == ["raspi/node/flame"]


def test_load_app_config_env_var(tmp_path, monkeypatch) -> None:
    path = tmp_path / "site.yaml"
    path.write_text("tick_interval_s: 0.5\n", encoding="utf-8")
    monkeypatch.setenv("SITEWATCH_CONFIG", str(path))

    assert load_app_config().tick_interval_s == 0.5


def test_load_app_config_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "absent.yaml"))


def test_non_mapping_root_is_rejected(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_app_config(str(path))
