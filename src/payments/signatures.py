"""Webhook signature and payload helpers."""

import hashlib
import hmac
import json
from typing import Any

from src.api.middleware.error_handler import WebhookVerificationError


def hmac_sha512_hex(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def signatures_match(expected: str, provided: str | None) -> bool:
    """Constant-time comparison. A missing signature never matches."""
    if not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.strip().encode("utf-8"))


def parse_json_object(raw_body: bytes) -> dict[str, Any]:
    """Decode a webhook body that must be a JSON object."""
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise WebhookVerificationError("Webhook payload is not valid JSON") from e
    if not isinstance(payload, dict):
        raise WebhookVerificationError("Webhook payload must be a JSON object")
    return payload


def as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
