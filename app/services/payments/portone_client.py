"""PortOne API client - Thin wrapper for billing-key charges and payment schedules."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Dict, Any, List
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.logging_config import get_logger
from app.utils.datetime_utils import to_iso

logger = get_logger(__name__)


class PortOneError(Exception):
    """Raised when a PortOne call fails or returns an unusable response.

    ``str(exc)`` is the human readable detail that ends up in the checklist.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _failure_detail(label: str, response: httpx.Response) -> str:
    body = _safe_json(response)
    if isinstance(body, (dict, list)):
        shown = json.dumps(body, ensure_ascii=False, separators=(",", ":"))
    else:
        shown = response.reason_phrase
    return f"{label} ({response.status_code}): {shown}"


def _path_id(value: str) -> str:
    return quote(value, safe="")


class PortOneClient:
    """Wrapper for the PortOne v2 REST API.

    Every method raises PortOneError on a non-2xx status or a transport error.
    A fresh ``httpx.AsyncClient`` is opened per call; pass ``transport`` to
    route calls somewhere other than the network (tests use MockTransport).
    """

    def __init__(
        self,
        secret: str,
        base_url: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not secret:
            raise RuntimeError("PORTONE_API_SECRET not configured")
        self.secret = secret
        self.base_url = (base_url or settings.PORTONE_API_BASE_URL).rstrip("/")
        self.currency = currency or settings.PORTONE_CURRENCY
        self.timeout = timeout if timeout is not None else settings.PORTONE_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"PortOne {self.secret}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        failure_label: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=payload, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"PortOne {method} {path} transport error: {e}")
            raise PortOneError(f"{failure_label}: {e}") from e

        if response.is_error:
            detail = _failure_detail(failure_label, response)
            logger.error(f"PortOne {method} {path} failed: {detail}")
            raise PortOneError(detail, status_code=response.status_code, body=_safe_json(response))

        return response

    def _payment_body(
        self,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_id: str,
    ) -> Dict[str, Any]:
        return {
            "billingKey": billing_key,
            "orderName": order_name,
            "amount": {"total": amount},
            "customer": {"id": customer_id},
            "currency": self.currency,
        }

    async def pay_with_billing_key(
        self,
        payment_id: str,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_id: str,
    ) -> Dict[str, Any]:
        """Charge a saved card immediately.

        Args:
            payment_id: Merchant generated payment id
            billing_key: Billing key issued for the customer's card
            order_name: Order description shown to the customer
            amount: Total amount in KRW
            customer_id: Merchant customer id

        Returns:
            Parsed PortOne response body (may be empty)
        """
        logger.info(f"Requesting billing-key payment: payment_id={payment_id}, amount={amount}")
        response = await self._request(
            "POST",
            f"/payments/{_path_id(payment_id)}/billing-key",
            "PortOne API 호출 실패",
            self._payment_body(billing_key, order_name, amount, customer_id),
        )
        logger.info(f"Billing-key payment accepted: payment_id={payment_id}")
        return _safe_json(response) or {}

    async def create_schedule(
        self,
        payment_id: str,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_id: str,
        time_to_pay: datetime,
        failure_label: str = "PortOne 스케줄 생성 실패",
    ) -> Dict[str, Any]:
        """Schedule a future billing-key charge under ``payment_id``."""
        payload = {
            "payment": self._payment_body(billing_key, order_name, amount, customer_id),
            "timeToPay": to_iso(time_to_pay),
        }
        logger.info(f"Creating payment schedule: payment_id={payment_id}, time_to_pay={payload['timeToPay']}")
        response = await self._request(
            "POST",
            f"/payments/{_path_id(payment_id)}/schedule",
            failure_label,
            payload,
        )
        return _safe_json(response) or {}

    async def get_payment(self, payment_id: str) -> Dict[str, Any]:
        """Fetch a single payment.

        Raises:
            PortOneError: On failure or when the response body is empty
        """
        response = await self._request(
            "GET",
            f"/payments/{_path_id(payment_id)}",
            "PortOne 결제 조회 실패",
        )
        detail = _safe_json(response)
        if not isinstance(detail, dict) or not detail:
            raise PortOneError("PortOne 결제 조회 응답이 비어 있습니다.", status_code=response.status_code)
        logger.info(f"Payment fetched: payment_id={payment_id}, status={detail.get('status')}")
        return detail

    async def cancel_payment(self, payment_id: str, reason: str = "취소 사유 없음") -> Dict[str, Any]:
        """Request a full cancellation of a payment."""
        logger.info(f"Requesting payment cancel: payment_id={payment_id}")
        response = await self._request(
            "POST",
            f"/payments/{_path_id(payment_id)}/cancel",
            "PortOne 결제 취소 API 호출 실패",
            {"reason": reason},
        )
        return _safe_json(response) or {}

    async def list_schedules(
        self,
        billing_key: str,
        from_time: datetime,
        until_time: datetime,
    ) -> List[Dict[str, Any]]:
        """List scheduled payments for a billing key inside [from_time, until_time]."""
        payload = {
            "filter": {
                "billingKey": billing_key,
                "from": to_iso(from_time),
                "until": to_iso(until_time),
            }
        }
        response = await self._request(
            "GET",
            "/payment-schedules",
            "PortOne 예약 결제 조회 실패",
            payload,
        )
        body = _safe_json(response) or {}
        items = body.get("items") if isinstance(body, dict) else None
        return items or []

    async def delete_schedules(self, schedule_ids: List[str], billing_key: str) -> Dict[str, Any]:
        """Delete scheduled payments by schedule id."""
        logger.info(f"Deleting payment schedules: ids={schedule_ids}")
        response = await self._request(
            "DELETE",
            "/payment-schedules",
            "PortOne 예약 결제 삭제 실패",
            {"scheduleIds": schedule_ids, "billingKey": billing_key},
        )
        return _safe_json(response) or {}


def get_portone_client() -> Optional[PortOneClient]:
    """Dependency returning a configured client, or None when the secret is missing."""
    if not settings.PORTONE_API_SECRET:
        return None
    return PortOneClient(settings.PORTONE_API_SECRET)
