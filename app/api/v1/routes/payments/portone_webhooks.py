"""PortOne webhook handler - Record paid charges and keep the next charge scheduled."""

from __future__ import annotations

import json
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.checklist import Checklist
from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.response import ResponseModel, error_response, success_response
from app.db.deps import get_db
from app.schemas.payments import (
    BODY_STEP,
    WEBHOOK_RULES,
    PortOneWebhookRequest,
    validate_payload,
    whole_number,
)
from app.services.payments import webhook_signature
from app.services.payments.portone_client import PortOneClient, PortOneError, get_portone_client
from app.services.payments.subscription_service import LedgerError, SubscriptionService
from app.utils.datetime_utils import build_billing_period, ensure_utc
from app.utils.enums import WebhookPaymentStatus

from .payments import (
    INVALID_JSON,
    MISSING_SECRET,
    VALIDATION_FAILED,
    check_portone_client,
    new_request_id,
    unexpected_error,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/portone", tags=["webhooks"])


class SubscriptionFlowError(Exception):
    """A step inside the Paid/Cancelled flow failed; already recorded in the checklist."""


def _verify_signature(request: Request, payload: bytes, checklist: Checklist) -> Optional[str]:
    secret = settings.PORTONE_WEBHOOK_SECRET
    if not secret:
        checklist.skipped("verify-webhook-signature", "웹훅 서명 비밀키가 설정되지 않아 검증을 건너뜁니다.")
        return None
    try:
        webhook_signature.verify(
            secret,
            request.headers,
            payload,
            tolerance_seconds=settings.PORTONE_WEBHOOK_TOLERANCE_SECONDS,
        )
    except webhook_signature.WebhookVerificationError as e:
        checklist.failed("verify-webhook-signature", str(e))
        return str(e)
    checklist.passed("verify-webhook-signature", "웹훅 서명 검증 완료")
    return None


def _positive_amount(value: Any) -> Optional[int]:
    value = whole_number(value)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


@router.post("", response_model=ResponseModel)
async def portone_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    portone: Optional[PortOneClient] = Depends(get_portone_client),
):
    """Handle PortOne payment status notifications.

    Supported statuses:
    - Paid: append a Paid ledger row and schedule the next monthly charge
    - Cancelled: append a Cancel row and delete the pending scheduled charge
    """
    webhook_id = new_request_id()
    logger.info(f"[WEBHOOK {webhook_id}] POST /portone")
    checklist = Checklist()

    try:
        payload = await request.body()

        signature_error = _verify_signature(request, payload, checklist)
        if signature_error:
            logger.warning(f"[WEBHOOK {webhook_id}] Invalid signature: {signature_error}")
            return error_response(signature_error, checklist=checklist, status_code=400)

        try:
            body = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            checklist.failed(BODY_STEP, INVALID_JSON)
            return error_response(INVALID_JSON, checklist=checklist, status_code=400)

        data, error = validate_payload(PortOneWebhookRequest, body, WEBHOOK_RULES, checklist)
        if data is None:
            logger.warning(f"[WEBHOOK {webhook_id}] Webhook rejected: {error}")
            return error_response(error or VALIDATION_FAILED, checklist=checklist, status_code=400)

        logger.info(f"[WEBHOOK {webhook_id}] payment_id={data.payment_id}, status={data.status.value}")

        if not check_portone_client(portone, checklist):
            logger.error(f"[WEBHOOK {webhook_id}] {MISSING_SECRET}")
            return error_response(MISSING_SECRET, checklist=checklist, status_code=500)

        try:
            payment_detail = await portone.get_payment(data.payment_id)
        except PortOneError as e:
            checklist.failed("fetch-portone-payment", str(e))
            checklist.failed("handle-fetch-payment-error", str(e))
            return error_response(
                "PortOne 결제 정보를 조회하지 못했습니다.",
                checklist=checklist,
                status_code=502,
            )
        checklist.passed("fetch-portone-payment", "PortOne 결제 정보 조회 성공")

        service = SubscriptionService(db)

        if data.status == WebhookPaymentStatus.cancelled:
            return await _handle_cancelled(webhook_id, data.payment_id, payment_detail, service, portone, checklist)

        return await _handle_paid(webhook_id, data.payment_id, payment_detail, service, portone, checklist)

    except Exception as e:
        logger.error(f"[WEBHOOK {webhook_id}] Webhook processing failed: {e}", exc_info=True)
        return unexpected_error(checklist, e)


async def _handle_cancelled(
    webhook_id: str,
    payment_id: str,
    payment_detail: Dict[str, Any],
    service: SubscriptionService,
    portone: PortOneClient,
    checklist: Checklist,
):
    """Append the cancellation row, then remove the matching scheduled charge."""
    billing_key = payment_detail.get("billingKey") or ""

    try:
        try:
            record = await service.latest_payment(payment_id)
        except LedgerError as e:
            checklist.failed("query-payment-record", str(e))
            raise SubscriptionFlowError(str(e)) from e
        checklist.passed("query-payment-record", "payment 테이블 조회 성공")

        try:
            await service.record_cancellation(record)
        except LedgerError as e:
            checklist.failed("insert-cancellation-record", str(e))
            raise SubscriptionFlowError(str(e)) from e
        checklist.passed("insert-cancellation-record", "취소 레코드 등록 성공")

        next_schedule_at = ensure_utc(record.next_schedule_at)
        try:
            items = await portone.list_schedules(
                billing_key=billing_key,
                from_time=next_schedule_at - timedelta(days=1),
                until_time=next_schedule_at + timedelta(days=1),
            )
        except PortOneError as e:
            checklist.failed("query-scheduled-payments", str(e))
            raise SubscriptionFlowError(str(e)) from e
        checklist.passed("query-scheduled-payments", "PortOne 예약 결제 조회 성공")

        matching = next(
            (item for item in items if item.get("paymentId") == record.next_schedule_id),
            None,
        )
        if matching is None or not matching.get("id"):
            detail = "일치하는 예약 결제를 찾을 수 없습니다."
            checklist.failed("find-matching-schedule", detail)
            raise SubscriptionFlowError(detail)
        checklist.passed("find-matching-schedule", f"예약 결제 ID 발견: {matching['id']}")

        try:
            await portone.delete_schedules([matching["id"]], billing_key)
        except PortOneError as e:
            checklist.failed("delete-scheduled-payments", str(e))
            raise SubscriptionFlowError(str(e)) from e
        checklist.passed("delete-scheduled-payments", "PortOne 예약 결제 삭제 성공")

    except SubscriptionFlowError as e:
        logger.error(f"[WEBHOOK {webhook_id}] Cancellation flow failed for {payment_id}: {e}")
        checklist.failed("handle-cancellation-error", str(e))
        return error_response("구독 취소를 처리하지 못했습니다.", checklist=checklist, status_code=500)
    except Exception as e:
        logger.error(f"[WEBHOOK {webhook_id}] Cancellation flow crashed for {payment_id}: {e}", exc_info=True)
        checklist.failed("handle-cancellation-error", str(e) or type(e).__name__)
        return error_response("구독 취소를 처리하지 못했습니다.", checklist=checklist, status_code=500)

    checklist.passed("complete-cancellation-flow", "구독 취소 처리 완료")
    logger.info(f"[WEBHOOK {webhook_id}] Subscription {payment_id} cancelled")
    return success_response(checklist=checklist)


async def _handle_paid(
    webhook_id: str,
    payment_id: str,
    payment_detail: Dict[str, Any],
    service: SubscriptionService,
    portone: PortOneClient,
    checklist: Checklist,
):
    """Append the Paid row, then schedule the charge for the next period."""
    amount = _positive_amount((payment_detail.get("amount") or {}).get("total"))
    if amount is None:
        detail = "PortOne 결제 정보에서 유효한 결제 금액을 확인할 수 없습니다."
        checklist.failed("validate-payment-amount", detail)
        return error_response(detail, checklist=checklist, status_code=500)

    billing_key = payment_detail.get("billingKey")
    order_name = payment_detail.get("orderName")
    customer_id = (payment_detail.get("customer") or {}).get("id")
    if (
        not billing_key
        or not order_name
        or not isinstance(customer_id, str)
        or not customer_id.strip()
    ):
        detail = "PortOne 결제 정보에서 구독 예약에 필요한 필드를 확인할 수 없습니다."
        checklist.failed("validate-payment-detail", detail)
        return error_response(detail, checklist=checklist, status_code=500)

    period = build_billing_period(
        period_days=settings.SUBSCRIPTION_PERIOD_DAYS,
        grace_days=settings.SUBSCRIPTION_GRACE_DAYS,
        schedule_hour=settings.NEXT_SCHEDULE_HOUR,
    )
    next_schedule_id = str(uuid.uuid4())

    try:
        await service.record_payment(
            transaction_key=payment_id,
            amount=amount,
            period=period,
            next_schedule_id=next_schedule_id,
        )
    except LedgerError as e:
        logger.error(f"[WEBHOOK {webhook_id}] Ledger insert failed for {payment_id}: {e}")
        checklist.failed("insert-payment-record", str(e))
        checklist.failed("handle-database-error", str(e))
        return error_response("결제 정보를 저장하지 못했습니다.", checklist=checklist, status_code=500)
    checklist.passed("insert-payment-record", "payment 테이블 등록 성공")

    try:
        await portone.create_schedule(
            payment_id=next_schedule_id,
            billing_key=billing_key,
            order_name=order_name,
            amount=amount,
            customer_id=customer_id,
            time_to_pay=period.next_schedule_at,
            failure_label="PortOne 구독 예약 실패",
        )
    except PortOneError as e:
        # Ledger row stays; the next charge is simply not scheduled
        logger.error(f"[WEBHOOK {webhook_id}] Scheduling next charge failed for {payment_id}: {e}")
        checklist.failed("schedule-next-subscription", str(e))
        checklist.failed("handle-schedule-error", str(e))
        return error_response("다음 구독 결제를 예약하지 못했습니다.", checklist=checklist, status_code=502)
    checklist.passed("schedule-next-subscription", "PortOne 다음달 구독 결제 예약 성공")

    checklist.passed("complete-subscription-flow", "구독 결제 완료 및 다음 결제 예약 처리 완료")
    logger.info(f"[WEBHOOK {webhook_id}] Subscription payment {payment_id} recorded")
    return success_response(checklist=checklist)
