import asyncio
import json
import logging
import threading

import httpx
import pytest
from fastapi.testclient import TestClient

from notification_service import emailer
from notification_service import main as notify_main
from notification_service.dispatcher import broadcast_status, unique_recipients
from notification_service.handlers import lambda_handler
from notification_service.recipients import paid_customer_emails
from notification_service.templates import new_order_alert, status_email
from shared import events
from shared.errors import DeliveryError, ValidationError

ALERT = {
    "orderNumber": "TR-250101-ABCD2345",
    "fullName": "Jana <b>Nováková</b>",
    "email": "jana@example.com",
    "plan": "pro",
    "wordpress": True,
    "duration": 12,
    "totalAmount": 48,
}


class Outbox(list):
    failing: set


@pytest.fixture
def outbox(monkeypatch):
    sent = Outbox()
    lock = threading.Lock()
    failing = set()

    def fake_send(to_email, subject, html_body, from_email=None):
        if to_email in failing:
            raise DeliveryError(to_email, "mailbox unavailable")
        with lock:
            sent.append({"to": to_email, "subject": subject, "html": html_body})

    monkeypatch.setattr(emailer, "send_email", fake_send)
    sent.failing = failing
    return sent


@pytest.fixture
def client():
    return TestClient(notify_main.app)


def test_new_order_template_escapes_customer_input():
    subject, html = new_order_alert(ALERT)

    assert subject.startswith("New order #TR-250101-ABCD2345")
    assert "&lt;b&gt;Nováková&lt;/b&gt;" in html
    assert "<b>Nováková</b>" not in html
    assert "12 months" in html
    assert "&euro;48" in html


@pytest.mark.parametrize("status", ["online", "offline", "maintenance"])
def test_status_templates(status):
    subject, html = status_email(status, "Disk <failure>")
    assert subject
    assert status.upper() in html
    if status == "offline":
        assert "Disk &lt;failure&gt;" in html
    else:
        assert "Disk" not in html


def test_unique_recipients():
    assert unique_recipients(["a@x.sk", "A@x.sk ", "", "b@x.sk"]) == ["a@x.sk", "b@x.sk"]


def test_broadcast_counts_partial_failures(outbox):
    outbox.failing.add("bad@example.com")

    result = asyncio.run(broadcast_status("maintenance", None, ["a@example.com", "bad@example.com", "c@example.com"]))

    assert result.as_dict() == {"successful": 2, "failed": 1, "totalEmails": 3}
    assert sorted(m["to"] for m in outbox) == ["a@example.com", "c@example.com"]


def test_broadcast_offline_without_reason_sends_nothing(outbox):
    with pytest.raises(ValidationError):
        asyncio.run(broadcast_status("offline", "", ["a@example.com"]))
    assert outbox == []


def test_paid_customer_emails_are_distinct(db, make_order):
    make_order(email="a@example.com", is_paid=True)
    make_order(email="a@example.com", is_paid=True)
    make_order(email="b@example.com", is_paid=False)
    make_order(email="c@example.com", is_paid=True)

    assert paid_customer_emails(db) == ["a@example.com", "c@example.com"]


def test_online_broadcast_reaches_only_paid_customer(client, outbox, make_order):
    make_order(email="paid@example.com", is_paid=True)
    make_order(email="pending@example.com", is_paid=False)

    r = client.post("/send-status-email", json={"status": "online"})

    assert r.status_code == 200
    body = r.json()
    assert (body["successful"], body["failed"], body["totalEmails"]) == (1, 0, 1)
    assert [m["to"] for m in outbox] == ["paid@example.com"]


def test_offline_request_without_reason_rejected(client, outbox, make_order):
    make_order(is_paid=True)

    r = client.post("/send-status-email", json={"status": "offline"})

    assert r.status_code == 400
    assert r.json()["field"] == "reason"
    assert outbox == []


def test_no_paid_orders(client, outbox):
    r = client.post("/send-status-email", json={"status": "online"})
    assert r.status_code == 200
    assert r.json()["totalEmails"] == 0


def test_notify_new_order(client, outbox):
    r = client.post("/notify-new-order", json=ALERT)

    assert r.status_code == 200
    [mail] = outbox
    assert mail["to"] == "operator@example.com"
    assert "TR-250101-ABCD2345" in mail["subject"]


def test_notify_new_order_delivery_failure(client, outbox):
    outbox.failing.add("operator@example.com")

    r = client.post("/notify-new-order", json=ALERT)

    assert r.status_code == 500
    assert "error" in r.json()


def test_cors_preflight(client):
    r = client.options(
        "/notify-new-order",
        headers={"Origin": "https://example.com", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"


def test_service_key_enforced(client, outbox, monkeypatch):
    monkeypatch.setattr(notify_main, "SERVICE_API_KEY", "k3y")

    assert client.post("/notify-new-order", json=ALERT).status_code == 401
    assert client.post("/notify-new-order", json=ALERT, headers={"X-Service-Key": "k3y"}).status_code == 200


def test_lambda_sqs_batch_reports_only_failures(outbox):
    outbox.failing.add("operator@example.com")
    event = {
        "Records": [
            {"messageId": "m1", "body": json.dumps({"type": "order.created", "payload": ALERT})},
            {"messageId": "m2", "body": "not json"},
        ]
    }

    resp = lambda_handler(event, None)

    assert resp == {"batchItemFailures": [{"itemIdentifier": "m1"}, {"itemIdentifier": "m2"}]}


def test_lambda_direct_invoke(outbox):
    assert lambda_handler({"type": "order.created", "payload": ALERT}, None) == {"ok": True, "source": "direct"}
    assert len(outbox) == 1


def test_lambda_batch_rejects_malformed_order_payload(outbox):
    incomplete = {k: v for k, v in ALERT.items() if k != "email"}
    event = {
        "Records": [
            {"messageId": "m1", "body": json.dumps({"type": "order.created", "payload": incomplete})},
            {"messageId": "m2", "body": json.dumps({"type": "order.created", "payload": {**ALERT, "duration": 0}})},
            {"messageId": "m3", "body": json.dumps({"type": "order.created"})},
            {"messageId": "m4", "body": json.dumps({"type": "order.created", "payload": ALERT})},
        ]
    }

    resp = lambda_handler(event, None)

    assert resp == {"batchItemFailures": [{"itemIdentifier": m} for m in ("m1", "m2", "m3")]}
    [mail] = outbox
    assert "TR-250101-ABCD2345" in mail["subject"]


def test_lambda_direct_invoke_with_bad_payload(outbox):
    resp = lambda_handler({"type": "order.created", "payload": {"orderNumber": "X"}}, None)

    assert resp["ok"] is False
    assert outbox == []


def test_lambda_ignores_other_event_types(outbox):
    assert lambda_handler({"type": "user.registered", "payload": {}}, None) == {"ok": True, "source": "direct"}
    assert outbox == []


@pytest.fixture
def notify_http(monkeypatch):
    """Route the http event backend to an in-memory notify function."""
    calls = []
    replies = {"status": 200}
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(replies["status"], json={"message": "ok"})

    monkeypatch.setenv("EVENT_BACKEND", "http")
    monkeypatch.setattr(events, "NOTIFY_URL_INTERNAL", "http://notify.test")
    monkeypatch.setattr(
        events.httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw)
    )
    return calls, replies


def test_http_publish_posts_alert(notify_http, monkeypatch):
    calls, _ = notify_http
    monkeypatch.setattr(events, "SERVICE_API_KEY", "k3y")

    events.publish("order.created", ALERT)

    [request] = calls
    assert request.method == "POST"
    assert str(request.url) == "http://notify.test/notify-new-order"
    assert json.loads(request.content) == ALERT
    assert request.headers["X-Service-Key"] == "k3y"


def test_http_publish_without_service_key(notify_http, monkeypatch):
    calls, _ = notify_http
    monkeypatch.setattr(events, "SERVICE_API_KEY", "")

    events.publish("order.created", ALERT)

    [request] = calls
    assert "x-service-key" not in request.headers


def test_http_publish_failure_raises_unless_safe(notify_http, caplog):
    calls, replies = notify_http
    replies["status"] = 500

    with pytest.raises(httpx.HTTPStatusError):
        events.publish("order.created", ALERT)

    with caplog.at_level(logging.ERROR, logger="shared.events"):
        events.publish("order.created", ALERT, safe=True)

    assert len(calls) == 2
    assert "event publish failed type=order.created" in caplog.text


def test_safe_publish_never_raises(monkeypatch):
    monkeypatch.setenv("EVENT_BACKEND", "carrier-pigeon")

    events.publish("order.created", ALERT, safe=True)

    with pytest.raises(RuntimeError):
        events.publish("order.created", ALERT)


def test_send_email_without_smtp_host(monkeypatch):
    monkeypatch.delenv("SMTP_HOST", raising=False)
    with pytest.raises(DeliveryError):
        emailer.send_email("a@example.com", "hi", "<p>hi</p>")


def test_send_email_over_smtp(monkeypatch):
    delivered = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            self.host, self.port = host, port

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def ehlo(self):
            pass

        def sendmail(self, from_addr, to_addrs, msg):
            delivered.append((from_addr, to_addrs, msg))

    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("FROM_EMAIL", "status@example.com")
    monkeypatch.setattr(emailer.smtplib, "SMTP", FakeSMTP)

    emailer.send_email("a@example.com", "Status", "<p>ok</p>")

    [(sender, recipients, msg)] = delivered
    assert sender == "status@example.com"
    assert recipients == ["a@example.com"]
    assert "Subject: Status" in msg
