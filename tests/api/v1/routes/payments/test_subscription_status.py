from __future__ import annotations

from datetime import timedelta

import pytest

from app.models.payment import Payment
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import PaymentStatus

pytestmark = pytest.mark.anyio


def _row(transaction_key, status=PaymentStatus.paid, start_offset=-1, grace_offset=30, amount=9900):
    now = get_current_utc_datetime()
    return Payment(
        transaction_key=transaction_key,
        amount=amount if status == PaymentStatus.paid else -amount,
        status=status,
        start_at=now + timedelta(days=start_offset),
        end_at=now + timedelta(days=grace_offset - 1),
        end_grace_at=now + timedelta(days=grace_offset),
        next_schedule_at=now + timedelta(days=grace_offset),
        next_schedule_id=f"next-{transaction_key}",
    )


async def test_status_is_free_without_payments(client):
    resp = await client.get("/api/v1/payments/status")
    assert resp.status_code == 200
    payload = resp.json()

    assert payload["success"] is True
    assert payload["subscriptionStatus"] == "free"
    assert "transactionKey" not in payload
    assert [i["step"] for i in payload["checklist"]] == ["fetch-all-payments", "check-payment-records"]


async def test_status_is_subscribed_inside_the_paid_window(client, db_session):
    db_session.add(_row("pay-1"))
    await db_session.commit()

    resp = await client.get("/api/v1/payments/status")
    payload = resp.json()

    assert payload["subscriptionStatus"] == "subscribed"
    assert payload["transactionKey"] == "pay-1"
    assert payload["checklist"][-1]["step"] == "set-subscription-status"


async def test_status_is_free_after_cancellation(client, db_session):
    db_session.add(_row("pay-1"))
    await db_session.commit()
    db_session.add(_row("pay-1", status=PaymentStatus.cancel))
    await db_session.commit()

    resp = await client.get("/api/v1/payments/status")
    assert resp.json()["subscriptionStatus"] == "free"


async def test_status_is_free_once_grace_has_passed(client, db_session):
    db_session.add(_row("pay-old", start_offset=-40, grace_offset=-1))
    await db_session.commit()

    resp = await client.get("/api/v1/payments/status")
    assert resp.json()["subscriptionStatus"] == "free"
