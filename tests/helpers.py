from datetime import datetime, timedelta, timezone
import base64
import hashlib
import hmac
import itertools
import json
import time

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_KEY = "test-admin-key"
AUTOMATION_SECRET = "test-automation-secret"

# 1x1 の透過PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def ticking_clock(start: datetime = datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc), step_seconds: int = 1):
    """呼ばれるたびに step_seconds 進む時計"""
    counter = itertools.count()
    return lambda: start + timedelta(seconds=step_seconds * next(counter))


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Stripe-Signature ヘッダーと同じ形式 (t=...,v1=...) で署名する"""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_id: str, event_type: str, obj: dict) -> str:
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "livemode": False,
        "api_version": "2024-06-20",
        "data": {"object": obj},
    })
