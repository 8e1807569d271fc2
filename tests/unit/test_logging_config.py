"""
Unit tests for sitewatch.logging_config.
"""

from __future__ import annotations

import logging

import sitewatch.logging_config as logging_config
from sitewatch.logging_config import ContextualFormatter

# 2026-01-01T00:00:02.250Z
CREATED = 1_767_225_602.25


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("sitewatch.test", logging.INFO, __file__, 1, "Alert %s", ("raised",), None)
    record.created = CREATED
    record.msecs = 250.0
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_formatter_appends_known_extras() -> None:
    fmt = ContextualFormatter(fmt="%(message)s")

    out = fmt.format(_record(channel="raspi/node/flame", severity="critical", unrelated="x"))

    assert out == "Alert raised | channel=raspi/node/flame severity=critical"


def test_formatter_skips_none_extras() -> None:
    fmt = ContextualFormatter(fmt="%(message)s")
    assert fmt.format(_record(channel=None)) == "Alert raised"


def test_formatter_custom_keys() -> None:
    fmt = ContextualFormatter(fmt="%(levelname)s %(message)s", context_keys=["path"])
    out = fmt.format(_record(channel="c", path="raspi/ppe"))
    assert out == "INFO Alert raised | path=raspi/ppe"


def test_timestamp_is_utc_with_milliseconds() -> None:
    fmt = ContextualFormatter(fmt="%(asctime)s %(message)s")
    assert fmt.format(_record()) == "2026-01-01T00:00:02.250Z Alert raised"


def test_default_keys_are_the_ones_the_package_logs() -> None:
    assert "pending" not in logging_config.CONTEXT_KEYS
    assert logging_config.CONTEXT_KEYS[0] == "channel"


def test_configure_logging_runs_once(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging_config, "_configured", False)
    monkeypatch.setattr(logging_config, "dictConfig", lambda cfg: calls.append(cfg))

    logging_config.configure_logging("DEBUG")
    logging_config.configure_logging("INFO")

    assert len(calls) == 1
    assert calls[0]["root"]["level"] == "DEBUG"
    assert calls[0]["formatters"]["contextual"]["()"] is ContextualFormatter
