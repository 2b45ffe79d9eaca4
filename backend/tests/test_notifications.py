"""Notification sinks. The webhook relay is faked at the requests.post boundary."""
import pytest
import requests

from childupdates.domain.common.errors import NotificationError
from childupdates.domain.update.models import Role
from childupdates.notifications import sink as sink_module
from childupdates.notifications.sink import LogNotificationSink, WebhookNotificationSink

ADDRESSES = {
    "field_submitter": "field@example.org",
    "academic_submitter": "academics@example.org",
    "reviewer": "admin@example.org",
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def posted(monkeypatch):
    calls = []

    def _install(response):
        def fake_post(url, json=None, headers=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
            if isinstance(response, Exception):
                raise response
            return response
        monkeypatch.setattr(sink_module.requests, "post", fake_post)
        return calls

    return _install


def test_webhook_posts_to_role_mailbox(posted):
    calls = posted(FakeResponse(payload={"messageId": "m-42"}))
    sink = WebhookNotificationSink("https://relay.example/send", ADDRESSES, token="t0k", timeout=3)

    receipt = sink.send(Role.REVIEWER, "Subject", "<p>Body</p>", "Body")
    assert receipt.message_id == "m-42"
    assert receipt.provider == "webhook"
    assert calls[0]["json"] == {"to": "admin@example.org", "subject": "Subject", "html": "<p>Body</p>", "text": "Body"}
    assert calls[0]["headers"]["Authorization"] == "Bearer t0k"
    assert calls[0]["timeout"] == 3


def test_webhook_without_message_id(posted):
    posted(FakeResponse(payload=["ok"]))
    sink = WebhookNotificationSink("https://relay.example/send", ADDRESSES)
    assert sink.send(Role.FIELD_SUBMITTER, "S", "<p>B</p>").message_id is None


def test_webhook_http_error_raises(posted):
    posted(FakeResponse(status_code=503))
    sink = WebhookNotificationSink("https://relay.example/send", ADDRESSES)
    with pytest.raises(NotificationError):
        sink.send(Role.REVIEWER, "S", "<p>B</p>")


def test_webhook_connection_error_raises(posted):
    posted(requests.ConnectionError("refused"))
    sink = WebhookNotificationSink("https://relay.example/send", ADDRESSES)
    with pytest.raises(NotificationError):
        sink.send(Role.REVIEWER, "S", "<p>B</p>")


def test_webhook_unknown_mailbox():
    sink = WebhookNotificationSink("https://relay.example/send", {})
    with pytest.raises(NotificationError):
        sink.send(Role.REVIEWER, "S", "<p>B</p>")


def test_log_sink_returns_receipt(caplog):
    with caplog.at_level("INFO", logger="childupdates"):
        receipt = LogNotificationSink(ADDRESSES).send(Role.ACADEMIC_SUBMITTER, "Reminder", "<p>B</p>")
    assert receipt.provider == "log"
    assert receipt.message_id.startswith("log-")
    assert "academics@example.org" in caplog.text
