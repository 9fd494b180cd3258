"""Request bodies for the payment, cancel and webhook routes.

The routes parse raw JSON themselves so that a rejected body still produces a
checklist. ``validate_payload`` runs the model and turns the first failing
field into a single checklist entry with a fixed step name and message.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StringConstraints, ValidationError

from app.core.checklist import Checklist
from app.utils.enums import WebhookPaymentStatus


StrictStrippedStr = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True, strict=True)]


def whole_number(value: Any) -> Any:
    """Turn a whole float such as ``9900.0`` into ``9900``; anything else is left for the int check."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# Bools, NaN, fractions and numeric strings are still rejected by the strict int check
PositiveAmount = Annotated[int, Field(gt=0, strict=True), BeforeValidator(whole_number)]


class CustomerRef(BaseModel):
    id: StrictStrippedStr


class PaymentCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    billingKey: StrictStrippedStr
    orderName: StrictStrippedStr
    amount: PositiveAmount
    customer: CustomerRef


class PaymentCancelRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transactionKey: StrictStrippedStr


class PortOneWebhookRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    payment_id: StrictStrippedStr
    status: WebhookPaymentStatus


# field -> (checklist step, message)
FieldRules = Dict[str, Tuple[str, str]]

BODY_STEP = "validate-request-body"
BODY_NOT_OBJECT = "요청 본문이 객체 형태가 아닙니다."
BODY_VALID = "요청 본문 검증 완료"

PAYMENT_CREATE_RULES: FieldRules = {
    "billingKey": ("validate-billing-key", "billingKey 값이 유효한 문자열이어야 합니다."),
    "orderName": ("validate-order-name", "orderName 값이 유효한 문자열이어야 합니다."),
    "amount": ("validate-amount", "amount 값은 0보다 큰 숫자여야 합니다."),
    "customer": ("validate-customer", "customer.id 값이 유효한 문자열이어야 합니다."),
}

PAYMENT_CANCEL_RULES: FieldRules = {
    "transactionKey": ("validate-transaction-key", "transactionKey 값이 유효한 문자열이어야 합니다."),
}

WEBHOOK_RULES: FieldRules = {
    "payment_id": ("validate-payment-id", "payment_id 값이 유효한 문자열이어야 합니다."),
    "status": ("validate-status", 'status 값은 "Paid" 또는 "Cancelled" 이어야 합니다.'),
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_payload(
    model: Type[ModelT],
    body: Any,
    rules: FieldRules,
    checklist: Checklist,
) -> Tuple[Optional[ModelT], Optional[str]]:
    """Validate ``body`` against ``model``, recording the outcome in ``checklist``.

    Returns ``(data, None)`` on success or ``(None, error_detail)`` when the
    body is rejected. Fields are checked in declaration order; only the first
    failure is reported.
    """
    if not isinstance(body, dict):
        checklist.failed(BODY_STEP, BODY_NOT_OBJECT)
        return None, BODY_NOT_OBJECT

    try:
        data = model.model_validate(body)
    except ValidationError as e:
        errors = e.errors()
        field_name = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else ""
        step, detail = rules.get(field_name, (BODY_STEP, errors[0]["msg"] if errors else BODY_NOT_OBJECT))
        checklist.failed(step, detail)
        return None, detail

    checklist.passed(BODY_STEP, BODY_VALID)
    return data, None
