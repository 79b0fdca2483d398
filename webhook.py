"""
Best-effort, HMAC-signed relay of inquiry events to an external endpoint.

Delivery is a single POST with no retry. ``dispatch_inquiry_webhook``
runs it on a daemon thread after the inquiry is committed; the outcome is
only logged.
"""

import hashlib
import hmac
import json
import logging
import os
import threading
import time
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def utc_timestamp(value) -> str:
    """
    UTC timestamp as 'YYYY-MM-DDTHH:MM:SS.mmmZ'.

    Naive values are stored UTC and are taken as such. Text that is not
    an ISO timestamp is passed through unchanged.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if not isinstance(value, datetime):
        return str(value)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def build_webhook_body(inquiry: dict) -> dict:
    """Payload in the shape the receiving portal expects."""
    created = inquiry.get("createdAt") or inquiry.get("created_at") or datetime.utcnow()
    return {
        "id": str(inquiry.get("id") or ""),
        "name": inquiry.get("customerName") or inquiry.get("name") or "",
        "email": inquiry.get("customerEmail") or inquiry.get("email") or "",
        "phone": inquiry.get("customerPhone") or inquiry.get("phone") or "",
        "message": inquiry.get("message") or "",
        "created_at": utc_timestamp(created),
    }


def sign_payload(secret: str, timestamp: str, raw_body: str) -> str:
    """Hex HMAC-SHA256 over '<timestamp>.<raw body>'."""
    message = f"{timestamp}.{raw_body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def forward_inquiry_webhook(inquiry: dict) -> dict:
    """
    POST the signed inquiry payload. Never raises.

    Returns {"skipped": True, "reason": ...} when the webhook is not
    configured, otherwise {"success": bool, "status": int|None, "body": str}.
    """
    url = os.getenv("INQUIRY_WEBHOOK_URL")
    secret = os.getenv("INQUIRY_WEBHOOK_SECRET")
    if not url or not secret:
        return {"skipped": True, "reason": "Webhook env not configured"}

    body = build_webhook_body(inquiry)
    raw = json.dumps(body, separators=(",", ":"))
    timestamp = str(int(time.time()))
    signature = sign_payload(secret, timestamp, raw)

    try:
        response = requests.post(
            url,
            data=raw.encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "X-Webhook-Timestamp": timestamp,
                "X-Webhook-Signature": signature,
                "Idempotency-Key": f"inq-{body['id']}",
            },
            timeout=float(os.getenv("WEBHOOK_TIMEOUT", DEFAULT_TIMEOUT))
        )
    except requests.RequestException as e:
        status = e.response.status_code if e.response is not None else None
        return {"success": False, "status": status, "body": str(e)}

    return {"success": response.ok, "status": response.status_code, "body": response.text}


def _deliver(payload: dict) -> None:
    result = forward_inquiry_webhook(payload)
    if result.get("skipped"):
        logger.info("Inquiry webhook skipped: %s", result.get("reason"))
    elif not result.get("success"):
        logger.warning("Inquiry webhook forward failed: %s", result)


def dispatch_inquiry_webhook(inquiry: dict) -> threading.Thread:
    """Fire-and-forget delivery on a background thread."""
    thread = threading.Thread(target=_deliver, args=(dict(inquiry),), daemon=True)
    thread.start()
    return thread
