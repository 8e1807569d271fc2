from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from sitewatch.notification.base import NotificationEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookConfig:
    """
    Where and how alert notifications are POSTed.

    Parameters
    ----------
    url
        Receiver endpoint.
    timeout_s
        Per-request timeout (connect and read).
    verify_tls
        Set False only for self-signed receivers on a trusted network.
    auth_header
        Full ``Authorization`` header value, e.g. ``"Bearer <token>"``.
    """

    url: str
    timeout_s: float = 2.0
    verify_tls: bool = True
    auth_header: Optional[str] = None


class WebhookNotifier:
    """
    Deliver notification payloads as JSON over HTTP.

    A single ``requests.Session`` is kept for the notifier's lifetime so
    bursts of alerts reuse one connection to the receiver. Failures propagate
    to the caller; :class:`NotificationWorkerThread` owns retry policy.
    """

    def __init__(self, cfg: WebhookConfig, session: Optional[requests.Session] = None):
        self._cfg = cfg
        self._session = session or requests.Session()
        self._session.headers["Content-Type"] = "application/json"
        if cfg.auth_header:
            self._session.headers["Authorization"] = cfg.auth_header

    def notify(self, event: NotificationEvent) -> None:
        """
        POST ``event.payload`` to the configured URL.

        Raises
        ------
        requests.HTTPError
            On a 4xx/5xx response.
        requests.RequestException
            On connection errors and timeouts.
        """
        resp = self._session.post(
            self._cfg.url,
            json=event.payload,
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        resp.raise_for_status()
        logger.debug("Webhook delivered (%s)", resp.status_code, extra={"channel": event.source})

    def close(self) -> None:
        self._session.close()
