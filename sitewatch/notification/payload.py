from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict

from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.domain.events import AlertEvent


def iso_ms(ts_ms: int) -> str:
    """
    Convert epoch milliseconds to an ISO-8601 UTC string with second precision.
    """
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def build_alert_webhook_payload(store: AlertRuleStore, ev: AlertEvent) -> Dict[str, Any]:
    """
    Build a webhook payload for an alert event plus current log totals.

    The payload includes:
    - "event": the alert event fields
    - "totals": counters computed from the rule store's event log

    Parameters
    ----------
    store
        Rule store whose event log is summarized.
    ev
        Alert event that triggered the webhook.

    Returns
    -------
    dict
        Webhook payload dictionary with keys: "type", "event", and "totals".
    """
    events = store.events

    by_severity = Counter(e.severity.value for e in events)
    by_channel = Counter(e.channel_id for e in events)

    event_payload = {
        "event_id": ev.event_id,
        "channel_id": ev.channel_id,
        "severity": ev.severity.value,
        "value": ev.value,
        "triggered_at": ev.triggered_at,
        "triggered_at_iso": iso_ms(ev.triggered_at),
        "acknowledged": ev.acknowledged,
    }

    totals_payload = {
        "events_total": len(events),
        "unacknowledged": sum(1 for e in events if not e.acknowledged),
        "by_severity": {k: int(v) for k, v in by_severity.items()},
        "by_channel": {k: int(v) for k, v in by_channel.items()},
    }

    return {
        "type": "alert_event",
        "event": event_payload,
        "totals": totals_payload,
    }
