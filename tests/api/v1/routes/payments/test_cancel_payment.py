from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.models.payment import Payment

pytestmark = pytest.mark.anyio

CANCEL_PATH = r"/payments/[^/]+/cancel"


async def test_cancel_requests_portone_cancellation(client, portone):
    portone.reply("POST", CANCEL_PATH, body={"cancellation": {"status": "SUCCEEDED"}})

    resp = await client.post("/api/v1/payments/cancel", json={"transactionKey": " pay-1 "})
    assert resp.status_code == 200
    payload = resp.json()

    assert payload["success"] is True
    assert [(i["step"], i["status"]) for i in payload["checklist"]] == [
        ("validate-request-body", "passed"),
        ("load-portone-secret", "passed"),
        ("request-portone-cancel", "passed"),
        ("complete-cancel-flow", "passed"),
    ]

    call = portone.calls_to("POST", CANCEL_PATH)[0]
    assert call.path == "/payments/pay-1/cancel"
    assert call.body == {"reason": "취소 사유 없음"}


async def test_cancel_does_not_touch_the_ledger(client, portone, db_session):
    portone.reply("POST", CANCEL_PATH, body={})
    await client.post("/api/v1/payments/cancel", json={"transactionKey": "pay-1"})

    count = await db_session.scalar(select(func.count()).select_from(Payment))
    assert count == 0


async def test_cancel_gateway_failure_returns_502(client, portone):
    portone.reply("POST", CANCEL_PATH, status_code=400, body={"type": "PAYMENT_ALREADY_CANCELLED"})

    resp = await client.post("/api/v1/payments/cancel", json={"transactionKey": "pay-1"})
    assert resp.status_code == 502
    payload = resp.json()
    assert payload["error"].startswith("PortOne 결제 취소 API 호출 실패 (400)")
    assert payload["checklist"][-1]["step"] == "request-portone-cancel"


@pytest.mark.parametrize("body", [{}, {"transactionKey": ""}, {"transactionKey": 42}])
async def test_cancel_rejects_missing_transaction_key(client, portone, body):
    resp = await client.post("/api/v1/payments/cancel", json=body)
    assert resp.status_code == 400
    payload = resp.json()
    assert payload["checklist"] == [
        {
            "step": "validate-transaction-key",
            "status": "failed",
            "detail": "transactionKey 값이 유효한 문자열이어야 합니다.",
        }
    ]
    assert portone.calls == []


class TestMissingSecret:
    @pytest.fixture()
    def portone_client_override(self):
        return lambda: None

    async def test_missing_secret_returns_500(self, client):
        resp = await client.post("/api/v1/payments/cancel", json={"transactionKey": "pay-1"})
        assert resp.status_code == 500
        assert resp.json()["checklist"][-1]["step"] == "load-portone-secret"


async def test_cancel_unexpected_error_returns_500(client, portone):
    def _crash(request):
        raise RuntimeError("gateway client exploded")

    portone.on("POST", CANCEL_PATH, _crash)

    resp = await client.post("/api/v1/payments/cancel", json={"transactionKey": "pay-1"})
    assert resp.status_code == 500
    payload = resp.json()
    assert payload["error"] == "서버 내부 오류가 발생했습니다."
    assert [(i["step"], i["status"]) for i in payload["checklist"]][-2:] == [
        ("load-portone-secret", "passed"),
        ("handle-unexpected-error", "failed"),
    ]
