"""PortOne webhook signature verification (Standard Webhooks scheme)."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from typing import Mapping, Optional

from app.utils.datetime_utils import get_current_utc_datetime

SECRET_PREFIX = "whsec_"


class WebhookVerificationError(Exception):
    pass


def _decode_secret(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        # Plain-text secrets are used as-is
        return secret.encode()


def sign(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    """Return the ``v1,<base64>`` signature for a payload."""
    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_decode_secret(secret), signed, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


def verify(
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    tolerance_seconds: int = 300,
    now: Optional[float] = None,
) -> None:
    """Check ``webhook-id``/``webhook-timestamp``/``webhook-signature`` headers.

    Raises:
        WebhookVerificationError: On missing headers, a stale timestamp or no matching signature
    """
    msg_id = headers.get("webhook-id")
    timestamp = headers.get("webhook-timestamp")
    signature_header = headers.get("webhook-signature")
    if not msg_id or not timestamp or not signature_header:
        raise WebhookVerificationError("웹훅 서명 헤더가 누락되었습니다.")

    try:
        sent_at = int(timestamp)
    except ValueError:
        raise WebhookVerificationError("웹훅 타임스탬프 형식이 올바르지 않습니다.")

    current = now if now is not None else get_current_utc_datetime().timestamp()
    if abs(current - sent_at) > tolerance_seconds:
        raise WebhookVerificationError("웹훅 타임스탬프가 허용 범위를 벗어났습니다.")

    expected = sign(secret, msg_id, timestamp, body)
    for candidate in signature_header.split():
        if hmac.compare_digest(candidate, expected):
            return

    raise WebhookVerificationError("웹훅 서명이 일치하지 않습니다.")
