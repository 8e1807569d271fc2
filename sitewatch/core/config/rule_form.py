"""
Rule configuration form validation.

Converts raw form input (strings from a web form, or already-typed values
from an API call) into an :class:`~sitewatch.domain.models.AlertRule`.
Every field is checked and all problems are reported together; nothing is
saved unless the whole form is valid.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from sitewatch.domain.models import AlertOp, AlertRule

_OP_ALIASES = {
    ">": AlertOp.GT,
    ">=": AlertOp.GTE,
    "<": AlertOp.LT,
    "<=": AlertOp.LTE,
}

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


@dataclass(frozen=True)
class RuleFormLimits:
    """
    Bounds enforced by the rule form.

    Parameters
    ----------
    threshold_min, threshold_max
        Inclusive threshold bounds; None leaves that side unconstrained.
    window_min, window_max
        Inclusive bounds for the averaging window in seconds.
    """

    threshold_min: Optional[float] = -1000.0
    threshold_max: Optional[float] = 10000.0
    window_min: int = 1
    window_max: int = 3600


class RuleValidationError(ValueError):
    """
    Raised when a rule form has one or more invalid fields.

    Attributes
    ----------
    errors
        Mapping of field name -> human-readable message.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in sorted(self.errors.items()))
        super().__init__(f"Invalid alert rule ({detail})")


def _parse_threshold(raw: Any, limits: RuleFormLimits, errors: Dict[str, str]) -> Optional[float]:
    if isinstance(raw, bool) or raw is None:
        errors["threshold"] = "Enter a number"
        return None
    try:
        value = float(raw.strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError, OverflowError):
        errors["threshold"] = "Enter a number"
        return None
    if not math.isfinite(value):
        errors["threshold"] = "Enter a number"
        return None
    if limits.threshold_min is not None and value < limits.threshold_min:
        errors["threshold"] = f"Must be at least {limits.threshold_min:g}"
        return None
    if limits.threshold_max is not None and value > limits.threshold_max:
        errors["threshold"] = f"Must be at most {limits.threshold_max:g}"
        return None
    return value


def _parse_op(raw: Any, errors: Dict[str, str]) -> Optional[AlertOp]:
    if isinstance(raw, AlertOp):
        return raw
    key = str(raw).strip().lower() if raw is not None else ""
    if key in _OP_ALIASES:
        return _OP_ALIASES[key]
    try:
        return AlertOp(key)
    except ValueError:
        errors["op"] = "Choose one of gt, gte, lt, lte"
        return None


def _parse_window(raw: Any, limits: RuleFormLimits, errors: Dict[str, str]) -> Optional[int]:
    if isinstance(raw, bool) or raw is None:
        errors["window_sec"] = "Enter a whole number of seconds"
        return None
    if isinstance(raw, float):
        if not raw.is_integer():
            errors["window_sec"] = "Enter a whole number of seconds"
            return None
        value = int(raw)
    else:
        try:
            value = int(raw.strip()) if isinstance(raw, str) else int(raw)
        except (TypeError, ValueError):
            errors["window_sec"] = "Enter a whole number of seconds"
            return None
    if not limits.window_min <= value <= limits.window_max:
        errors["window_sec"] = f"Must be between {limits.window_min} and {limits.window_max}"
        return None
    return value


def _parse_enabled(raw: Any, errors: Dict[str, str]) -> Optional[bool]:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        key = raw.strip().lower()
        if key in _TRUE:
            return True
        if key in _FALSE:
            return False
    errors["enabled"] = "Must be true or false"
    return None


def parse_rule_form(
    channel_id: str,
    form: Mapping[str, Any],
    limits: Optional[RuleFormLimits] = None,
) -> AlertRule:
    """
    Validate a rule form and build the rule.

    Parameters
    ----------
    channel_id
        Channel the rule is for.
    form
        Raw form fields: ``threshold``, ``op``, ``window_sec``, ``enabled``.
        A missing ``enabled`` is treated as an unchecked checkbox (False).
    limits
        Field bounds; defaults to :class:`RuleFormLimits`.

    Returns
    -------
    AlertRule
        The validated rule.

    Raises
    ------
    RuleValidationError
        If any field is invalid. ``errors`` lists every invalid field.
    """
    lim = limits or RuleFormLimits()
    errors: Dict[str, str] = {}

    threshold = _parse_threshold(form.get("threshold"), lim, errors)
    op = _parse_op(form.get("op"), errors)
    window_sec = _parse_window(form.get("window_sec"), lim, errors)
    enabled = _parse_enabled(form.get("enabled", False), errors)

    if errors:
        raise RuleValidationError(errors)

    return AlertRule(
        channel_id=channel_id,
        threshold=threshold,  # type: ignore[arg-type]
        op=op,  # type: ignore[arg-type]
        window_sec=window_sec,  # type: ignore[arg-type]
        enabled=enabled,  # type: ignore[arg-type]
    )
