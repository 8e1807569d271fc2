from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from sitewatch.core.alarm.alarm_engine import AlertStateMachine
from sitewatch.core.config.rule_form import RuleFormLimits, parse_rule_form
from sitewatch.core.ingest.normalizer import normalize
from sitewatch.core.state.rule_store import AlertRuleStore
from sitewatch.core.state.series_buffer import LiveSeriesBuffer
from sitewatch.domain.clock import now_ms as _wall_clock_ms
from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertRule, PathUpdate, TimeRange
from sitewatch.runtime.event_bus import EventBus
from sitewatch.runtime.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass
class MonitoringController:
    """
    Orchestrate ingestion of path updates, ticks and alert evaluation.

    Responsibilities
    ----------------
    - Fan an incoming path update out to every subscribed channel on that
      path, normalize it per channel and ingest valid readings.
    - On every tick, merge/sort/prune the buffer, then run one state machine
      cycle over the fresh series.
    - Publish emitted alert events to an `EventBus` when one is configured.
    - Keep subscriptions, buffers and alert state in step when the set of
      channels of interest changes.
    - Apply rule form edits and alert acknowledgements from the
      configuration surface to the rule store.

    Notes
    -----
    ``handle_update`` and ``tick`` mutate the buffer and must be called from a
    single thread (the tick worker).
    The rule and acknowledgement operations only touch the rule store, which
    is lock-guarded, so any thread may call them.

    Parameters
    ----------
    buffer
        Live series buffer owned by this controller.
    rules
        Rule store (explicit rules and alert event log).
    engine
        Alert state machine.
    subscriptions
        Channel subscriptions.
    time_range
        Retention window applied on every tick.
    bus
        Optional event bus used to publish AlertEvents to subscribers.
    form_limits
        Bounds applied by :meth:`configure_rule`.
    """

    buffer: LiveSeriesBuffer
    rules: AlertRuleStore
    engine: AlertStateMachine
    subscriptions: SubscriptionRegistry
    time_range: TimeRange = TimeRange.M15
    bus: Optional[EventBus] = None
    form_limits: RuleFormLimits = field(default_factory=RuleFormLimits)

    def handle_update(self, update: PathUpdate, now_ms: Optional[int] = None) -> int:
        """
        Normalize and ingest one path update.

        Parameters
        ----------
        update
            Raw update from the realtime store.
        now_ms
            Receipt time; also substituted for missing payload timestamps.

        Returns
        -------
        int
            Number of readings ingested (0 when nothing subscribes to the path
            or every payload was malformed).
        """
        received = now_ms if now_ms is not None else _wall_clock_ms()
        ingested = 0
        for cfg in self.subscriptions.channels_for(update.path):
            reading = normalize(cfg.kind, update.data, field=cfg.field, now_ms=received)
            if reading is None:
                continue
            self.buffer.ingest(cfg.channel_id, reading, received_at_ms=received)
            ingested += 1
        return ingested

    def tick(self, now_ms: Optional[int] = None) -> List[AlertEvent]:
        """
        Advance all channels and evaluate alerts once.

        Returns
        -------
        list of AlertEvent
            Alert events emitted during this tick.
        """
        ts = now_ms if now_ms is not None else _wall_clock_ms()
        self.buffer.tick(ts, self.time_range.ms)
        events = self.engine.run_once(self.buffer, self.rules, now_ms=ts)

        if self.bus is not None:
            for ev in events:
                self.bus.publish_alert(ev)

        return events

    def set_channels(self, channel_ids: Iterable[str]) -> None:
        """
        Replace the set of channels of interest.

        Channels no longer of interest lose their subscription, buffered data
        and alert state. Newly wanted channels start out empty.
        """
        wanted = list(channel_ids)
        for cid in self.subscriptions.reconcile(wanted):
            self.buffer.discard(cid)
            self.engine.forget(cid)
            logger.info("Channel unsubscribed", extra={"channel": cid})
        for cid in self.subscriptions.subscribed():
            self.buffer.track(cid)

    def set_time_range(self, time_range: TimeRange) -> None:
        self.time_range = time_range

    def configure_rule(self, channel_id: str, form: Mapping[str, Any]) -> AlertRule:
        """
        Validate a rule form against ``form_limits`` and save the rule.

        Raises
        ------
        RuleValidationError
            If any field is invalid; the stored rule is left unchanged.
        """
        rule = parse_rule_form(channel_id, form, self.form_limits)
        self.rules.set_rule(rule)
        logger.info(
            "Alert rule saved: %s %s over %ds%s",
            rule.op.value,
            rule.threshold,
            rule.window_sec,
            "" if rule.enabled else " (disabled)",
            extra={"channel": channel_id},
        )
        return rule

    def remove_rule(self, channel_id: str) -> None:
        """Drop the explicit rule; the channel falls back to its default."""
        self.rules.remove_rule(channel_id)
        logger.info("Alert rule removed", extra={"channel": channel_id})

    def acknowledge(self, event_id: str) -> bool:
        found = self.rules.ack_event(event_id)
        if not found:
            logger.warning("Acknowledged unknown alert event", extra={"event_id": event_id})
        return found

    def clear_alert_log(self) -> None:
        self.rules.clear_events()
