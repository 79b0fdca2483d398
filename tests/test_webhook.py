"""Tests for the signed inquiry webhook."""

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

import pytest
import requests

import webhook
from webhook import (
    build_webhook_body,
    dispatch_inquiry_webhook,
    forward_inquiry_webhook,
    sign_payload,
    utc_timestamp,
)

INQUIRY = {
    "id": "inq-42",
    "customerName": "Ayesha",
    "customerEmail": "ayesha@example.com",
    "customerPhone": None,
    "message": "Umrah in May?",
    "createdAt": "2024-04-01T10:00:00",
}


class FakeResponse:
    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("INQUIRY_WEBHOOK_URL", "https://portal.example/hooks/inquiry")
    monkeypatch.setenv("INQUIRY_WEBHOOK_SECRET", "s3cret")


@pytest.fixture
def captured_posts(monkeypatch):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        return FakeResponse()

    monkeypatch.setattr(webhook.requests, "post", fake_post)
    return calls


def test_body_shape():
    assert build_webhook_body(INQUIRY) == {
        "id": "inq-42",
        "name": "Ayesha",
        "email": "ayesha@example.com",
        "phone": "",
        "message": "Umrah in May?",
        "created_at": "2024-04-01T10:00:00.000Z",
    }


@pytest.mark.parametrize("value,expected", [
    ("2024-04-01T10:00:00", "2024-04-01T10:00:00.000Z"),
    ("2024-04-01T10:00:00.123456", "2024-04-01T10:00:00.123Z"),
    ("2024-04-01T15:00:00+05:00", "2024-04-01T10:00:00.000Z"),
    ("2024-04-01T10:00:00Z", "2024-04-01T10:00:00.000Z"),
    (datetime(2024, 4, 1, 10, 0), "2024-04-01T10:00:00.000Z"),
    (datetime(2024, 4, 1, 5, 0, tzinfo=timezone(timedelta(hours=-5))), "2024-04-01T10:00:00.000Z"),
    ("yesterday", "yesterday"),
])
def test_created_at_is_utc_with_z_suffix(value, expected):
    assert utc_timestamp(value) == expected


def test_missing_created_at_is_stamped_now():
    created = build_webhook_body({"id": "inq-1"})["created_at"]
    assert created.endswith("Z")
    assert datetime.fromisoformat(created.replace("Z", "+00:00")).tzinfo is not None


def test_signature_is_hmac_of_timestamp_and_body():
    expected = hmac.new(b"key", b"1700000000.{}", hashlib.sha256).hexdigest()
    assert sign_payload("key", "1700000000", "{}") == expected


def test_skipped_without_configuration(monkeypatch, captured_posts):
    monkeypatch.delenv("INQUIRY_WEBHOOK_URL", raising=False)
    monkeypatch.setenv("INQUIRY_WEBHOOK_SECRET", "s3cret")
    assert forward_inquiry_webhook(INQUIRY) == {"skipped": True, "reason": "Webhook env not configured"}
    assert captured_posts == []


def test_signed_post(configured, captured_posts):
    result = forward_inquiry_webhook(INQUIRY)
    assert result == {"success": True, "status": 200, "body": "ok"}

    call = captured_posts[0]
    assert call["url"] == "https://portal.example/hooks/inquiry"
    headers = call["headers"]
    assert headers["Content-Type"] == "application/json"
    assert headers["Idempotency-Key"] == "inq-inq-42"

    raw = call["data"].decode("utf-8")
    assert json.loads(raw)["email"] == "ayesha@example.com"
    assert " " not in raw.replace("Umrah in May?", "")
    assert headers["X-Webhook-Signature"] == sign_payload("s3cret", headers["X-Webhook-Timestamp"], raw)
    assert call["timeout"] == 10


def test_non_2xx_is_a_failure(configured, monkeypatch):
    monkeypatch.setattr(webhook.requests, "post", lambda *a, **kw: FakeResponse(503, "down"))
    assert forward_inquiry_webhook(INQUIRY) == {"success": False, "status": 503, "body": "down"}


def test_network_error_is_reported_not_raised(configured, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(webhook.requests, "post", boom)
    result = forward_inquiry_webhook(INQUIRY)
    assert result["success"] is False
    assert result["status"] is None
    assert "connection refused" in result["body"]


def test_dispatch_runs_in_background(configured, captured_posts):
    thread = dispatch_inquiry_webhook(INQUIRY)
    assert thread.daemon
    thread.join(timeout=5)
    assert len(captured_posts) == 1


def test_failed_dispatch_is_logged(configured, monkeypatch, caplog):
    monkeypatch.setattr(webhook.requests, "post", lambda *a, **kw: FakeResponse(500, "boom"))
    with caplog.at_level("WARNING", logger="webhook"):
        dispatch_inquiry_webhook(INQUIRY).join(timeout=5)
    assert "Inquiry webhook forward failed" in caplog.text
