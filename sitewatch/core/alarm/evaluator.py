from __future__ import annotations

from typing import Optional, Sequence

from sitewatch.domain.clock import now_ms as _wall_clock_ms
from sitewatch.domain.models import AlertOp, AlertRule, AlertSeverity, Reading

HYSTERESIS_RATIO = 0.05


def _windowed_average(series: Sequence[Reading], window_start_ms: int) -> Optional[float]:
    """
    Mean value of readings at or after ``window_start_ms``.

    Returns
    -------
    float or None
        Average, or None if no reading falls inside the window.
    """
    values = [r.value for r in series if r.timestamp >= window_start_ms]
    if not values:
        return None
    return sum(values) / len(values)


def _breached(op: AlertOp, avg: float, threshold: float, hysteresis: float) -> bool:
    """
    Apply ``op`` with the dead-band on the side that makes triggering harder.
    """
    if op is AlertOp.GT:
        return avg > threshold + hysteresis
    if op is AlertOp.GTE:
        return avg >= threshold + hysteresis
    if op is AlertOp.LT:
        return avg < threshold - hysteresis
    if op is AlertOp.LTE:
        return avg <= threshold - hysteresis
    raise ValueError(f"Unknown alert operator: {op!r}")


def evaluate_alert(
    series: Sequence[Reading],
    rule: AlertRule,
    now_ms: Optional[int] = None,
) -> Optional[AlertSeverity]:
    """
    Evaluate a threshold rule over the trailing window of a series.

    The rule compares the arithmetic mean of the readings inside the last
    ``rule.window_sec`` seconds against ``rule.threshold``. A dead-band of
    ``5% * |threshold|`` is added on the triggering side so that values
    hovering around the threshold do not flap. A breach is CRITICAL when the
    average is more than twice the dead-band away from the threshold, and WARN
    otherwise. With ``threshold == 0`` the dead-band collapses to zero, so an
    average strictly beyond the threshold is CRITICAL; for ``gte``/``lte`` an
    average exactly at 0 breaches but is only WARN.

    Parameters
    ----------
    series
        Readings for one channel, any order.
    rule
        Rule to evaluate.
    now_ms
        Evaluation time. Defaults to the current wall-clock time.

    Returns
    -------
    AlertSeverity or None
        Severity of the breach, or None if the rule is disabled, there is no
        data in the window, or the condition does not hold.
    """
    if not rule.enabled or not series:
        return None

    now = now_ms if now_ms is not None else _wall_clock_ms()
    avg = _windowed_average(series, now - rule.window_sec * 1000)
    if avg is None:
        return None

    hysteresis = HYSTERESIS_RATIO * abs(rule.threshold)
    if not _breached(rule.op, avg, rule.threshold, hysteresis):
        return None

    if abs(avg - rule.threshold) > 2 * hysteresis:
        return AlertSeverity.CRITICAL
    return AlertSeverity.WARN
