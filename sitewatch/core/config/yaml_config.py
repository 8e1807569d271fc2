from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from sitewatch.config.settings import ALERT_DEFAULTS, Settings
from sitewatch.core.config.rule_form import RuleFormLimits
from sitewatch.domain.models import AlertOp, ChannelConfig, ChannelKind, TimeRange
from sitewatch.transport.tcp_client import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT_S

CONFIG_ENV_VAR = "SITEWATCH_CONFIG"


@dataclass(frozen=True)
class FeedConnection:
    """Where the readings receiver connects and how hard it retries."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout_s: float = DEFAULT_TIMEOUT_S
    reconnect_delay_s: float = 0.5
    max_reconnect_delay_s: float = 30.0


@dataclass(frozen=True)
class WebhookSettings:
    """Optional alert webhook; absent means notifications are off."""
    url: str
    auth_header: Optional[str] = None
    timeout_s: float = 3.0
    verify_tls: bool = True


@dataclass(frozen=True)
class AlertsConfig:
    """Alert engine, rule store and rule form configuration."""
    state_path: Optional[str] = None
    max_events: int = 100
    defaults: Dict[str, Dict[str, Any]] = field(default_factory=lambda: dict(ALERT_DEFAULTS))
    form: RuleFormLimits = field(default_factory=RuleFormLimits)


@dataclass(frozen=True)
class AppConfig:
    """
    Typed form of ``config.yaml``. Every section is optional; omitted values
    fall back to :class:`~sitewatch.config.settings.Settings`.
    """
    tick_interval_s: float
    time_range: TimeRange
    stale_after_ms: int
    channels: List[ChannelConfig]
    subscribe: List[str]
    transport: FeedConnection
    alerts: AlertsConfig
    webhook: Optional[WebhookSettings]
    log_level: str = "INFO"


def _read_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: top level must be a mapping, got {type(data).__name__}")
    return data


def default_config_path() -> Path:
    """
    ``$SITEWATCH_CONFIG`` when set, otherwise ``config.yaml`` in the working
    directory.
    """
    env = os.environ.get(CONFIG_ENV_VAR)
    return Path(env).expanduser().resolve() if env else Path.cwd() / "config.yaml"


def _section(parent: Dict[str, Any], key: str) -> Dict[str, Any]:
    """A nested mapping; a key written with no body counts as empty."""
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a mapping, got {type(value).__name__}")
    return value


def _parse_channel(item: Dict[str, Any]) -> ChannelConfig:
    return ChannelConfig(
        channel_id=str(item["channel_id"]),
        path=str(item.get("path", item["channel_id"])),
        kind=ChannelKind(item["kind"]),
        field=None if item.get("field") is None else str(item["field"]),
        name=str(item.get("name", "")),
        unit=str(item.get("unit", "")),
    )


def _parse_default_rule(item: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if "threshold" in item:
        out["threshold"] = float(item["threshold"])
    if "op" in item:
        out["op"] = AlertOp(item["op"])
    if "window_sec" in item:
        out["window_sec"] = int(item["window_sec"])
    if "enabled" in item:
        out["enabled"] = bool(item["enabled"])
    return out


def _optional_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Read a YAML file and parse it with :func:`parse_app_config`.

    ``path`` overrides :func:`default_config_path`.

    Raises
    ------
    FileNotFoundError
        If the file is absent.
    ValueError
        If the file is not a mapping or a value is invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"No configuration file at {cfg_path}")

    return parse_app_config(_read_yaml(cfg_path))


def parse_app_config(raw: Dict[str, Any]) -> AppConfig:
    """
    Convert an already-loaded YAML mapping into :class:`AppConfig`.

    Raises
    ------
    ValueError
        If a field has an invalid value or a required key is missing.
    """
    defaults = Settings()

    try:
        # ---- timing ----
        tick_interval_s = float(raw.get("tick_interval_s", defaults.tick_interval_s))
        if tick_interval_s <= 0:
            raise ValueError("tick_interval_s must be positive")
        time_range = TimeRange(str(raw.get("time_range", defaults.time_range.value)))
        stale_after_ms = int(raw.get("stale_after_ms", defaults.stale_after_ms))

        # ---- channels ----
        channels_raw = raw.get("channels")
        if channels_raw is None:
            channels = defaults.default_channels()
        else:
            channels = [_parse_channel(item) for item in channels_raw]

        subscribe_raw = raw.get("subscribe")
        subscribe = [c.channel_id for c in channels] if subscribe_raw is None else [str(s) for s in subscribe_raw]

        # ---- transport ----
        t = _section(_section(raw, "transport"), "tcp_client")
        feed_defaults = FeedConnection()
        transport = FeedConnection(
            host=str(t.get("host", feed_defaults.host)),
            port=int(t.get("port", feed_defaults.port)),
            timeout_s=float(t.get("timeout_s", feed_defaults.timeout_s)),
            reconnect_delay_s=float(t.get("reconnect_delay_s", feed_defaults.reconnect_delay_s)),
            max_reconnect_delay_s=float(t.get("max_reconnect_delay_s", feed_defaults.max_reconnect_delay_s)),
        )
        if transport.max_reconnect_delay_s < transport.reconnect_delay_s:
            raise ValueError("max_reconnect_delay_s must be >= reconnect_delay_s")

        # ---- webhook (optional) ----
        w = _section(raw, "webhook")
        webhook = None
        if w:
            webhook = WebhookSettings(
                url=str(w["url"]),
                auth_header=w.get("auth_header"),
                timeout_s=float(w.get("timeout_s", 3.0)),
                verify_tls=bool(w.get("verify_tls", True)),
            )

        # ---- alerts ----
        a = _section(raw, "alerts")
        rule_defaults = dict(ALERT_DEFAULTS)
        for channel_id, item in _section(a, "defaults").items():
            key = str(channel_id)
            rule_defaults[key] = {**rule_defaults.get(key, {}), **_parse_default_rule(item or {})}

        f = _section(a, "form")
        form = RuleFormLimits(
            threshold_min=_optional_float(f.get("threshold_min", -1000.0)),
            threshold_max=_optional_float(f.get("threshold_max", 10000.0)),
            window_min=int(f.get("window_min", 1)),
            window_max=int(f.get("window_max", 3600)),
        )

        alerts = AlertsConfig(
            state_path=a.get("state_path"),
            max_events=int(a.get("max_events", defaults.max_events)),
            defaults=rule_defaults,
            form=form,
        )

        log_level = str(_section(raw, "logging").get("level", "INFO")).upper()
    except KeyError as e:
        raise ValueError(f"Missing required config key: {e}") from e

    return AppConfig(
        tick_interval_s=tick_interval_s,
        time_range=time_range,
        stale_after_ms=stale_after_ms,
        channels=channels,
        subscribe=subscribe,
        transport=transport,
        alerts=alerts,
        webhook=webhook,
        log_level=log_level,
    )
