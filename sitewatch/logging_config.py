"""
Process-wide logging setup.

Log lines carry a UTC timestamp and, after a ``|``, whichever alert
context the call site passed through ``extra``::

    2026-01-01T00:00:02.000Z WARNING sitewatch.core.alarm.alarm_engine: Alert raised | channel=raspi/node/flame severity=critical value=1.0
"""

from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Iterable, Optional, Tuple, Union

# Keys passed via ``extra=`` somewhere in the package, in display order.
CONTEXT_KEYS: Tuple[str, ...] = ("channel", "path", "kind", "field", "severity", "value", "event_id")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


class ContextualFormatter(logging.Formatter):
    """
    Formatter that renders UTC ``...Z`` timestamps with millisecond
    precision and appends ``key=value`` pairs for known context keys.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        style: str = "%",
        context_keys: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._keys = tuple(CONTEXT_KEYS if context_keys is None else context_keys)

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        if datefmt:
            return super().formatTime(record, datefmt)
        stamp = time.strftime("%Y-%m-%dT%H:%M:%S", self.converter(record.created))
        return f"{stamp}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={record.__dict__[key]}"
            for key in self._keys
            if record.__dict__.get(key) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Install the contextual stderr handler on the root logger (first call wins)."""
    global _configured
    if _configured:
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": ContextualFormatter,
                    "fmt": LOG_FORMAT,
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "contextual",
                },
            },
            "root": {"handlers": ["stderr"], "level": level},
            # urllib3 logs every webhook connection at DEBUG
            "loggers": {"urllib3": {"level": "WARNING"}},
        }
    )
    _configured = True
