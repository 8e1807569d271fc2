"""
Alert evaluation contracts (context and collaborator protocols).

This module defines the contract between:

- the alert evaluator (pure, stateless) producing a severity verdict
- the alert state machine (stateful) turning verdicts into events
- the series and rule sources the state machine reads from and writes to

Notes
-----
The protocols are structural so tests can pass lightweight fakes instead of
the real buffer and rule store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from sitewatch.domain.events import AlertEvent
from sitewatch.domain.models import AlertRule, Reading


@dataclass(frozen=True)
class AlertContext:
    """
    Context passed into alert evaluation.

    One engine cycle evaluates every channel against the same "now" so that
    all verdicts and event ids in a cycle agree.

    Parameters
    ----------
    now_ms
        Evaluation timestamp for the current cycle, in ms since the epoch.
    """

    now_ms: int


class SeriesSource(Protocol):
    """
    Read-side view of the live series buffer used by the state machine.
    """

    def channels(self) -> List[str]:
        ...

    def series(self, channel_id: str) -> Sequence[Reading]:
        ...

    def latest(self, channel_id: str) -> Optional[Reading]:
        ...


class RuleSource(Protocol):
    """
    Rule store surface used by the state machine.

    ``get_rule`` returns the explicit user rule only; defaults are resolved by
    the caller. ``add_event`` records a new alert event.
    """

    def get_rule(self, channel_id: str) -> Optional[AlertRule]:
        ...

    def add_event(self, event: AlertEvent) -> None:
        ...
