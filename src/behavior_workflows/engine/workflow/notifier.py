"""Side-channel failure notification under the `notify` failure policy.

Delivery is fire-and-forget from the scheduler's point of view.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Protocol

import requests

from .models import utc_iso_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FailureNotification:
    organization_id: str
    workflow_name: str
    behavior_id: str
    behavior_type: str
    message: str
    failure_kind: str
    occurred_at: str = field(default_factory=utc_iso_now)

    def to_json(self) -> dict[str, object]:
        return asdict(self)


class Notifier(Protocol):
    def notify(self, notification: FailureNotification) -> None: ...


class LoggingNotifier:
    """Default notifier: emit the failure as a warning log record."""

    def notify(self, notification: FailureNotification) -> None:
        logger.warning(
            "Behavior failure notification", extra={"notification": notification.to_json()}
        )


class WebhookNotifier:
    """POST failure notifications as JSON to a configured URL."""

    def __init__(
        self, url: str, *, timeout: float = 10.0, session: requests.Session | None = None
    ) -> None:
        if not url.strip():
            raise ValueError("Webhook URL is required")
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Content-Type": "application/json", "User-Agent": "workflow-behavior-engine"}
        )

    @property
    def url(self) -> str:
        return self._url

    def notify(self, notification: FailureNotification) -> None:
        resp = self._session.post(self._url, json=notification.to_json(), timeout=self._timeout)
        resp.raise_for_status()

    def close(self) -> None:
        self._session.close()


def build_notifier(webhook_url: str = "", *, timeout: float = 10.0) -> Notifier:
    if webhook_url.strip():
        logger.info("Using webhook failure notifier", extra={"url": webhook_url})
        return WebhookNotifier(webhook_url, timeout=timeout)
    return LoggingNotifier()
