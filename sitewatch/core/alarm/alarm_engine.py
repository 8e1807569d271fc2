"""
Alert state machine.

This module contains the stateful, per-channel alert lifecycle manager. It
turns the stateless verdicts of :func:`evaluate_alert` into discrete
:class:`AlertEvent` records, one per distinct state entry.

The engine does not implement threshold logic itself; it resolves the
effective rule per channel, asks the evaluator for a verdict, and applies the
verdict to a three-state machine (none / warn / critical).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sitewatch.core.alarm.alarm_base import AlertContext, RuleSource, SeriesSource
from sitewatch.core.alarm.evaluator import evaluate_alert
from sitewatch.core.alarm.rule_resolution import resolve_rule
from sitewatch.domain.clock import now_ms as _wall_clock_ms
from sitewatch.domain.events import AlertEvent, make_event_id
from sitewatch.domain.models import AlertSeverity

logger = logging.getLogger(__name__)


@dataclass
class AlertStateMachine:
    """
    Edge-triggered alert lifecycle manager.

    Lifecycle Model
    ---------------
    For each channel, the engine remembers the last emitted severity
    (``None`` means no active alert):

    - none -> warn/critical:     emit event (rising edge)
    - warn <-> critical:         emit event (escalation / de-escalation)
    - warn/critical -> none:     reset silently (no event)
    - same severity as before:   nothing

    A channel stuck in breach therefore produces exactly one event.

    Notes
    -----
    - State lives in memory only and starts empty on every process start.
    - Channels whose effective rule is disabled are skipped entirely: their
      state is neither evaluated nor changed.

    Parameters
    ----------
    defaults
        Per-channel default rule table. If None, the built-in table is used.
    """

    defaults: Optional[Mapping[str, Mapping[str, Any]]] = None
    _states: Dict[str, Optional[AlertSeverity]] = field(default_factory=dict)

    def run_once(self, buffer: SeriesSource, rules: RuleSource, now_ms: Optional[int] = None) -> List[AlertEvent]:
        """
        Evaluate every channel once and record resulting events.

        Parameters
        ----------
        buffer
            Series source (normally the live series buffer, after its tick).
        rules
            Rule store providing explicit rules and receiving new events.
        now_ms
            Timestamp for this evaluation. If None, uses the wall clock.

        Returns
        -------
        list of AlertEvent
            Events emitted during this cycle.
        """
        ctx = AlertContext(now_ms=now_ms if now_ms is not None else _wall_clock_ms())

        events: List[AlertEvent] = []
        for channel_id in buffer.channels():
            ev = self._step(channel_id, buffer, rules, ctx)
            if ev is not None:
                rules.add_event(ev)
                events.append(ev)
        return events

    def last_state(self, channel_id: str) -> Optional[AlertSeverity]:
        """
        Last emitted severity for a channel (None when no alert is active).
        """
        return self._states.get(channel_id)

    def active_channels(self) -> Dict[str, AlertSeverity]:
        """
        Channels currently in an alert state, with their severity.
        """
        return {c: s for c, s in self._states.items() if s is not None}

    def forget(self, channel_id: str) -> None:
        """
        Drop runtime state for a channel that is no longer monitored.
        """
        self._states.pop(channel_id, None)

    def reset(self) -> None:
        self._states.clear()

    def _step(
        self,
        channel_id: str,
        buffer: SeriesSource,
        rules: RuleSource,
        ctx: AlertContext,
    ) -> Optional[AlertEvent]:
        rule = resolve_rule(channel_id, rules.get_rule(channel_id), self.defaults)
        if not rule.enabled:
            return None

        severity = evaluate_alert(buffer.series(channel_id), rule, now_ms=ctx.now_ms)
        last = self._states.get(channel_id)

        if severity is not None and severity != last:
            latest = buffer.latest(channel_id)
            self._states[channel_id] = severity
            ev = AlertEvent(
                event_id=make_event_id(channel_id, ctx.now_ms),
                channel_id=channel_id,
                value=latest.value if latest is not None else 0.0,
                triggered_at=ctx.now_ms,
                severity=severity,
                acknowledged=False,
            )
            logger.info(
                "Alert %s -> %s",
                "none" if last is None else last.value,
                severity.value,
                extra={"channel": channel_id, "severity": severity.value, "value": ev.value},
            )
            return ev

        if severity is None and last is not None:
            self._states[channel_id] = None
            logger.info("Alert resolved", extra={"channel": channel_id})

        return None
