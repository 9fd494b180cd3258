"""Subscription payment routes - charge by billing key, cancel, derived status."""

from __future__ import annotations

import json
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.checklist import Checklist
from app.core.logging_config import get_logger
from app.core.response import ResponseModel, error_response, success_response
from app.db.deps import get_db
from app.schemas.payments import (
    BODY_STEP,
    PAYMENT_CANCEL_RULES,
    PAYMENT_CREATE_RULES,
    PaymentCancelRequest,
    PaymentCreateRequest,
    validate_payload,
)
from app.services.payments.portone_client import PortOneClient, PortOneError, get_portone_client
from app.services.payments.subscription_service import SubscriptionService
from app.utils.datetime_utils import add_months, get_current_utc_datetime

logger = get_logger(__name__)
router = APIRouter(prefix="/payments", tags=["payments"])

INVALID_JSON = "요청 본문이 JSON 형식이 아닙니다."
VALIDATION_FAILED = "요청 본문 검증에 실패했습니다."
INTERNAL_ERROR = "서버 내부 오류가 발생했습니다."
MISSING_SECRET = "PORTONE_API_SECRET 환경변수가 설정되지 않았습니다."


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


async def read_json_body(request: Request, checklist: Checklist) -> tuple[Any, Optional[str]]:
    """Return ``(body, None)`` or ``(None, error)`` when the body is not JSON."""
    try:
        return await request.json(), None
    except (json.JSONDecodeError, UnicodeDecodeError):
        checklist.failed(BODY_STEP, INVALID_JSON)
        return None, INVALID_JSON


def check_portone_client(client: Optional[PortOneClient], checklist: Checklist) -> bool:
    if client is None:
        checklist.failed("load-portone-secret", MISSING_SECRET)
        return False
    checklist.passed("load-portone-secret", "PortOne 비밀키 로드 완료")
    return True


def unexpected_error(checklist: Checklist, exc: Exception):
    checklist.failed("handle-unexpected-error", str(exc) or "예상치 못한 오류가 발생했습니다.")
    return error_response(INTERNAL_ERROR, checklist=checklist, status_code=500)


@router.post("", response_model=ResponseModel)
async def create_payment(
    request: Request,
    portone: Optional[PortOneClient] = Depends(get_portone_client),
):
    """Charge a saved card with its billing key and schedule next month's charge.

    Request:
        - billingKey: Billing key issued for the card
        - orderName: Order description
        - amount: Amount in KRW (> 0)
        - customer.id: Merchant customer id

    Response:
        - paymentId: Id of the charge just made
        - checklist: Steps performed

    The ledger row is written by the PortOne webhook, not here. A failed
    schedule is reported in the checklist but the charge still succeeds.
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] POST /payments")
    checklist = Checklist()

    try:
        body, error = await read_json_body(request, checklist)
        if error:
            return error_response(error, checklist=checklist, status_code=400)

        data, error = validate_payload(PaymentCreateRequest, body, PAYMENT_CREATE_RULES, checklist)
        if data is None:
            logger.warning(f"[{request_id}] Payment request rejected: {error}")
            return error_response(error or VALIDATION_FAILED, checklist=checklist, status_code=400)

        if not check_portone_client(portone, checklist):
            logger.error(f"[{request_id}] {MISSING_SECRET}")
            return error_response(MISSING_SECRET, checklist=checklist, status_code=500)

        payment_id = str(uuid.uuid4())
        checklist.passed("generate-payment-id", f"결제 ID 생성: {payment_id}")

        try:
            await portone.pay_with_billing_key(
                payment_id=payment_id,
                billing_key=data.billingKey,
                order_name=data.orderName,
                amount=data.amount,
                customer_id=data.customer.id,
            )
        except PortOneError as e:
            checklist.failed("request-portone-payment", str(e))
            return error_response(str(e), checklist=checklist, status_code=502)
        checklist.passed("request-portone-payment", "PortOne billing-key 결제 요청 성공")

        # First recurring charge one calendar month from now
        next_payment_id = str(uuid.uuid4())
        time_to_pay = add_months(get_current_utc_datetime(), 1)
        try:
            await portone.create_schedule(
                payment_id=next_payment_id,
                billing_key=data.billingKey,
                order_name=data.orderName,
                amount=data.amount,
                customer_id=data.customer.id,
                time_to_pay=time_to_pay,
            )
            checklist.passed("create-schedule", "정기 결제 스케줄 생성 완료")
        except PortOneError as e:
            logger.warning(f"[{request_id}] Schedule creation failed after successful charge {payment_id}: {e}")
            checklist.failed("create-schedule", str(e) or "스케줄 생성 실패")

        checklist.passed(
            "payment-flow-complete",
            "결제 요청 완료. 결제 정보는 webhook에서 저장됩니다.",
        )
        logger.info(f"[{request_id}] Payment {payment_id} requested")
        return success_response(checklist=checklist, paymentId=payment_id)

    except Exception as e:
        logger.error(f"[{request_id}] Payment request failed: {e}", exc_info=True)
        return unexpected_error(checklist, e)


@router.post("/cancel", response_model=ResponseModel)
async def cancel_payment(
    request: Request,
    portone: Optional[PortOneClient] = Depends(get_portone_client),
):
    """Ask PortOne to cancel a payment.

    The Cancelled webhook that follows appends the ledger row and removes the
    next scheduled charge.
    """
    request_id = new_request_id()
    logger.info(f"[{request_id}] POST /payments/cancel")
    checklist = Checklist()

    try:
        body, error = await read_json_body(request, checklist)
        if error:
            return error_response(error, checklist=checklist, status_code=400)

        data, error = validate_payload(PaymentCancelRequest, body, PAYMENT_CANCEL_RULES, checklist)
        if data is None:
            logger.warning(f"[{request_id}] Cancel request rejected: {error}")
            return error_response(error or VALIDATION_FAILED, checklist=checklist, status_code=400)

        if not check_portone_client(portone, checklist):
            logger.error(f"[{request_id}] {MISSING_SECRET}")
            return error_response(MISSING_SECRET, checklist=checklist, status_code=500)

        try:
            await portone.cancel_payment(data.transactionKey)
        except PortOneError as e:
            checklist.failed("request-portone-cancel", str(e))
            return error_response(str(e), checklist=checklist, status_code=502)
        checklist.passed("request-portone-cancel", "PortOne 결제 취소 요청 성공")

        checklist.passed("complete-cancel-flow", "결제 취소 처리 완료 (DB 저장은 webhook에서 처리)")
        logger.info(f"[{request_id}] Cancel requested for {data.transactionKey}")
        return success_response(checklist=checklist)

    except Exception as e:
        logger.error(f"[{request_id}] Cancel request failed: {e}", exc_info=True)
        return unexpected_error(checklist, e)


@router.get("/status", response_model=ResponseModel)
async def get_subscription_status(db: AsyncSession = Depends(get_db)):
    """Derive the subscription status from the payment ledger.

    Latest row per transaction key; ``subscribed`` when one of them is Paid
    and now falls inside ``[start_at, end_grace_at]``, otherwise ``free``.
    """
    result = await SubscriptionService(db).resolve_status()
    return success_response(
        checklist=result.checklist,
        subscriptionStatus=result.status.value,
        transactionKey=result.transaction_key,
        error=result.error,
    )
