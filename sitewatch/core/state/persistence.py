from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertRule

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "alerts-store"


class JsonStatePersistence:
    """
    Persist the rule store's ``{rules, events}`` document to a JSON file.

    The document lives under a fixed namespace key so several stores can share
    one file::

        {"alerts-store": {"rules": {...}, "events": [...]}}
    """

    def __init__(self, path: Path, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.path = path
        self.namespace = namespace
        path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, rules: Dict[str, AlertRule], events: List[AlertEvent]) -> None:
        doc = self._read_document()
        doc[self.namespace] = {
            "rules": {cid: r.to_dict() for cid, r in rules.items()},
            "events": [e.to_dict() for e in events],
        }
        self.path.write_text(json.dumps(doc, indent=2, sort_keys=True), encoding="utf-8")

    def load(self) -> Tuple[Dict[str, AlertRule], List[AlertEvent]]:
        """
        Load rules and events; unreadable or corrupt state loads as empty.
        """
        section = self._read_document().get(self.namespace)
        if not isinstance(section, dict):
            return {}, []

        rules: Dict[str, AlertRule] = {}
        events: List[AlertEvent] = []
        try:
            for cid, payload in (section.get("rules") or {}).items():
                rules[cid] = AlertRule.from_dict(payload)
            for payload in section.get("events") or []:
                events.append(AlertEvent.from_dict(payload))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Discarding unreadable alert state in %s: %r", self.path, e)
            return {}, []
        return rules, events

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}
