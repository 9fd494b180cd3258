import base64
import hashlib
import hmac

import pytest

from app.services.payments.webhook_signature import WebhookVerificationError, sign, verify

SECRET = "whsec_" + base64.b64encode(b"super-secret").decode()
BODY = b'{"payment_id":"pay-1","status":"Paid"}'
NOW = 1_700_000_000


def _headers(body=BODY, timestamp=NOW, secret=SECRET):
    ts = str(timestamp)
    return {
        "webhook-id": "msg_1",
        "webhook-timestamp": ts,
        "webhook-signature": sign(secret, "msg_1", ts, body),
    }


def test_sign_matches_standard_webhooks_scheme():
    expected = hmac.new(b"super-secret", b"msg_1.1700000000." + BODY, hashlib.sha256).digest()
    assert sign(SECRET, "msg_1", "1700000000", BODY) == "v1," + base64.b64encode(expected).decode()


def test_plain_text_secret_is_used_as_is():
    expected = hmac.new(b"not base64!", b"m.1." + BODY, hashlib.sha256).digest()
    assert sign("not base64!", "m", "1", BODY) == "v1," + base64.b64encode(expected).decode()


def test_verify_accepts_valid_signature():
    verify(SECRET, _headers(), BODY, now=NOW + 10)


def test_verify_accepts_any_of_several_signatures():
    headers = _headers()
    headers["webhook-signature"] = "v1,bm9wZQ== " + headers["webhook-signature"]
    verify(SECRET, headers, BODY, now=NOW)


@pytest.mark.parametrize("missing", ["webhook-id", "webhook-timestamp", "webhook-signature"])
def test_verify_requires_all_headers(missing):
    headers = _headers()
    del headers[missing]
    with pytest.raises(WebhookVerificationError, match="헤더가 누락"):
        verify(SECRET, headers, BODY, now=NOW)


def test_verify_rejects_malformed_timestamp():
    headers = _headers()
    headers["webhook-timestamp"] = "yesterday"
    with pytest.raises(WebhookVerificationError, match="형식"):
        verify(SECRET, headers, BODY, now=NOW)


def test_verify_rejects_stale_timestamp():
    with pytest.raises(WebhookVerificationError, match="허용 범위"):
        verify(SECRET, _headers(), BODY, tolerance_seconds=300, now=NOW + 301)


def test_verify_rejects_other_secret_or_body():
    with pytest.raises(WebhookVerificationError, match="일치하지 않습니다"):
        verify(SECRET, _headers(secret="whsec_b3RoZXI="), BODY, now=NOW)
    with pytest.raises(WebhookVerificationError, match="일치하지 않습니다"):
        verify(SECRET, _headers(), BODY + b" ", now=NOW)
