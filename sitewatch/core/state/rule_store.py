from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertRule

logger = logging.getLogger(__name__)

MAX_EVENTS = 100

PersistHook = Callable[[Dict[str, AlertRule], List[AlertEvent]], None]


@dataclass
class AlertRuleStore:
    """
    Store for user-configured alert rules and the alert event log.

    This store maintains:
    - at most one rule per channel, keyed by channel id
    - a capped, most-recent-first list of alert events

    Concurrency Model
    -----------------
    Rules are edited from the configuration surface while the tick worker
    appends events, so all reads/writes are guarded by a re-entrant lock.
    Read properties return copies.

    Notes
    -----
    - When the log is full, the oldest events are silently dropped.
    - If ``persist`` is set, it is called with the full state after every
      mutation (serialize-on-mutation). A failing hook is logged; the
      in-memory mutation stands and the caller never sees the error.

    Attributes
    ----------
    max_events
        Capacity of the event log.
    persist
        Optional hook receiving ``(rules, events)`` after every mutation.
    """

    max_events: int = MAX_EVENTS
    persist: Optional[PersistHook] = None
    _rules: Dict[str, AlertRule] = field(default_factory=dict)
    _events: List[AlertEvent] = field(default_factory=list)

    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    # --- Rules API ---
    def set_rule(self, rule: AlertRule) -> None:
        """
        Add or replace the rule for ``rule.channel_id``.
        """
        with self._lock:
            self._rules[rule.channel_id] = rule
            self._flush()

    def remove_rule(self, channel_id: str) -> None:
        """
        Delete the rule for a channel; the channel falls back to its defaults.
        """
        with self._lock:
            if self._rules.pop(channel_id, None) is not None:
                self._flush()

    def get_rule(self, channel_id: str) -> Optional[AlertRule]:
        with self._lock:
            return self._rules.get(channel_id)

    @property
    def rules(self) -> Dict[str, AlertRule]:
        """
        Snapshot copy of all explicit rules.
        """
        with self._lock:
            return dict(self._rules)

    # --- Events API ---
    def add_event(self, event: AlertEvent) -> None:
        """
        Prepend an event and truncate the log to ``max_events``.
        """
        with self._lock:
            self._events.insert(0, event)
            del self._events[self.max_events:]
            self._flush()

    def ack_event(self, event_id: str) -> bool:
        """
        Mark an event as acknowledged.

        Returns
        -------
        bool
            True if the event was found, False otherwise (no-op).
        """
        with self._lock:
            for i, ev in enumerate(self._events):
                if ev.event_id == event_id:
                    if not ev.acknowledged:
                        self._events[i] = replace(ev, acknowledged=True)
                        self._flush()
                    return True
            return False

    @property
    def events(self) -> List[AlertEvent]:
        """
        Snapshot copy of the event log, most recent first.
        """
        with self._lock:
            return list(self._events)

    def unacknowledged(self) -> List[AlertEvent]:
        with self._lock:
            return [e for e in self._events if not e.acknowledged]

    def clear_events(self) -> None:
        """
        Clear the event log.

        Notes
        -----
        This is typically triggered by UI actions (e.g., "Clear log").
        """
        with self._lock:
            self._events.clear()
            self._flush()

    def load(self, rules: Dict[str, AlertRule], events: List[AlertEvent]) -> None:
        """
        Replace the store contents (used at startup with persisted state).
        """
        with self._lock:
            self._rules = dict(rules)
            self._events = list(events)[: self.max_events]

    def _flush(self) -> None:
        if self.persist is None:
            return
        try:
            self.persist(dict(self._rules), list(self._events))
        except Exception:
            # the next successful mutation writes the full state again
            logger.exception("Persisting alert state failed")
