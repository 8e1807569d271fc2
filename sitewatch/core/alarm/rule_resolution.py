from __future__ import annotations

from typing import Any, Mapping, Optional

from sitewatch.config.settings import ALERT_DEFAULTS, GENERIC_DEFAULT
from sitewatch.domain.models import AlertOp, AlertRule


def resolve_rule(
    channel_id: str,
    explicit: Optional[AlertRule],
    defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> AlertRule:
    """
    Resolve the effective rule for a channel.

    Precedence: explicit user rule, then the channel's default entry, then
    the generic fallback. A partial default entry takes its missing fields
    from the generic fallback.

    Parameters
    ----------
    channel_id
        Channel to resolve.
    explicit
        User-configured rule, if any.
    defaults
        Per-channel default table. Defaults to :data:`ALERT_DEFAULTS`.

    Returns
    -------
    AlertRule
        Effective rule for the channel.
    """
    if explicit is not None:
        return explicit

    table = ALERT_DEFAULTS if defaults is None else defaults
    entry = table.get(channel_id) or {}

    def pick(key: str) -> Any:
        v = entry.get(key)
        return GENERIC_DEFAULT[key] if v is None else v

    return AlertRule(
        channel_id=channel_id,
        threshold=float(pick("threshold")),
        op=AlertOp(pick("op")),
        window_sec=int(pick("window_sec")),
        enabled=bool(pick("enabled")),
    )
