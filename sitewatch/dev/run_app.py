from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Dict, List, Sequence, Tuple

from sitewatch.bootstrap import build_app_system
from sitewatch.core.config.yaml_config import load_app_config
from sitewatch.domain.clock import now_ms
from sitewatch.logging_config import configure_logging
from sitewatch.views.snapshots import alert_rows, sensor_rows, summary

logger = logging.getLogger("sitewatch.dev.run_app")


def parse_rule_arg(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Split ``CHANNEL:key=value,key=value`` into the channel id and raw form
    fields for :meth:`MonitoringController.configure_rule`.

    Raises
    ------
    ValueError
        If the channel or a ``key=value`` pair is missing.
    """
    channel, sep, fields = text.rpartition(":")
    if not sep or not channel:
        raise ValueError(f"Expected CHANNEL:key=value,... got {text!r}")
    form: Dict[str, str] = {}
    for pair in filter(None, fields.split(",")):
        key, eq, value = pair.partition("=")
        if not eq:
            raise ValueError(f"Expected key=value, got {pair!r}")
        form[key.strip()] = value.strip()
    return channel, form


def _option_values(argv: Sequence[str], name: str) -> List[str]:
    return [argv[i + 1] for i, arg in enumerate(argv[:-1]) if arg == name]


def main() -> None:
    """
    Start the monitoring runtime headless and log a status line periodically.

    Notes
    -----
    - Loads configuration from `config.yaml` by default.
    - Optional CLI usage::

        sitewatch --config path/to/config.yaml \\
            --rule raspi/node/smoke:threshold=900,op=gt,window_sec=5,enabled=true

      ``--rule`` may be repeated; each one is validated against the
      configured form limits before the runtime starts.
    """
    argv = sys.argv[1:]
    config_paths = _option_values(argv, "--config")

    cfg = load_app_config(config_paths[-1] if config_paths else None)
    configure_logging(cfg.log_level)
    wiring = build_app_system(cfg=cfg)

    for text in _option_values(argv, "--rule"):
        channel, form = parse_rule_arg(text)
        wiring.controller.configure_rule(channel, form)

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    wiring.runtime.start()
    logger.info("Monitoring %d of %d known channel(s)", len(wiring.config.subscribe), len(wiring.registry))

    try:
        while not stop.wait(10.0):
            ts = now_ms()
            s = summary(wiring.buffer, wiring.engine, ts, wiring.config.stale_after_ms)
            logger.info(
                "online %d/%d, critical %d, warning %d, unacknowledged %d",
                s.online,
                s.total,
                s.critical,
                s.warning,
                len(wiring.rules.unacknowledged()),
            )
            if logger.isEnabledFor(logging.DEBUG):
                for row in sensor_rows(wiring.buffer, wiring.registry, wiring.engine, ts, wiring.config.stale_after_ms):
                    logger.debug("sensor %s", " | ".join(row))
                for row in alert_rows(wiring.rules, limit=10):
                    logger.debug("alert %s", " | ".join(row))
    finally:
        wiring.runtime.stop()
        if wiring.notifier is not None:
            wiring.notifier.stop()


if __name__ == "__main__":
    main()
