from __future__ import annotations

import logging
from unittest.mock import Mock

import pytest
import requests

from behavior_workflows.engine.workflow.notifier import (
    FailureNotification,
    LoggingNotifier,
    WebhookNotifier,
    build_notifier,
)


def _notification() -> FailureNotification:
    return FailureNotification(
        organization_id="org_1",
        workflow_name="form_submission",
        behavior_id="bhv_1",
        behavior_type="send-confirmation-email",
        message="SMTP timeout",
        failure_kind="external_call_failed",
    )


def test_webhook_notifier_posts_json() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    notifier = WebhookNotifier("https://hooks.example.com/x", timeout=3.0, session=session)

    notifier.notify(_notification())

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args == ("https://hooks.example.com/x",)
    assert kwargs["timeout"] == 3.0
    assert kwargs["json"]["behavior_type"] == "send-confirmation-email"
    assert kwargs["json"]["failure_kind"] == "external_call_failed"
    session.post.return_value.raise_for_status.assert_called_once()
    assert session.headers["Content-Type"] == "application/json"


def test_webhook_notifier_surfaces_http_errors() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("502")
    notifier = WebhookNotifier("https://hooks.example.com/x", session=session)

    with pytest.raises(requests.HTTPError):
        notifier.notify(_notification())


def test_webhook_notifier_requires_url() -> None:
    with pytest.raises(ValueError):
        WebhookNotifier(" ")


def test_build_notifier() -> None:
    assert isinstance(build_notifier(""), LoggingNotifier)
    webhook = build_notifier("https://hooks.example.com/x", timeout=1.0)
    assert isinstance(webhook, WebhookNotifier)
    assert webhook.url == "https://hooks.example.com/x"
    webhook.close()


def test_logging_notifier(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        LoggingNotifier().notify(_notification())

    record = caplog.records[-1]
    assert record.getMessage() == "Behavior failure notification"
    assert record.notification["behavior_id"] == "bhv_1"
