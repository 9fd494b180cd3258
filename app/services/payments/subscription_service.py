"""Subscription ledger service - append-only payment rows and derived status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.checklist import Checklist
from app.core.logging_config import get_logger
from app.models.payment import Payment
from app.utils.datetime_utils import BillingPeriod, ensure_utc, get_current_utc_datetime
from app.utils.enums import PaymentStatus, SubscriptionStatus

logger = get_logger(__name__)


class LedgerError(Exception):
    """Raised when a ledger read or write fails. The message is checklist ready."""


@dataclass
class SubscriptionStatusResult:
    status: SubscriptionStatus
    transaction_key: Optional[str] = None
    error: Optional[str] = None
    checklist: Checklist = field(default_factory=Checklist)


def latest_per_transaction_key(payments: Sequence[Payment]) -> List[Payment]:
    """Keep the most recently created row for every transaction key, newest first."""
    latest: Dict[str, Payment] = {}
    for payment in payments:
        current = latest.get(payment.transaction_key)
        if current is None or ensure_utc(payment.created_at) > ensure_utc(current.created_at):
            latest[payment.transaction_key] = payment
    return sorted(latest.values(), key=lambda p: ensure_utc(p.created_at), reverse=True)


def is_active(payment: Payment, now: datetime) -> bool:
    """A row grants access when it is Paid and ``start_at <= now <= end_grace_at``."""
    if payment.status != PaymentStatus.paid:
        return False
    return ensure_utc(payment.start_at) <= now <= ensure_utc(payment.end_grace_at)


class SubscriptionService:
    """Reads and appends payment ledger rows. Rows are never updated."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _add(self, payment: Payment) -> Payment:
        try:
            self.db.add(payment)
            await self.db.commit()
            await self.db.refresh(payment)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise LedgerError(str(e)) from e
        return payment

    async def record_payment(
        self,
        transaction_key: str,
        amount: int,
        period: BillingPeriod,
        next_schedule_id: str,
    ) -> Payment:
        """Append a Paid row for a successful charge."""
        payment = Payment(
            transaction_key=transaction_key,
            amount=amount,
            status=PaymentStatus.paid,
            start_at=period.start_at,
            end_at=period.end_at,
            end_grace_at=period.end_grace_at,
            next_schedule_at=period.next_schedule_at,
            next_schedule_id=next_schedule_id,
        )
        logger.info(
            f"Recording payment: transaction_key={transaction_key}, amount={amount}, "
            f"next_schedule_id={next_schedule_id}"
        )
        try:
            return await self._add(payment)
        except LedgerError as e:
            raise LedgerError(f"payment 등록 실패: {e}") from e

    async def latest_payment(self, transaction_key: str) -> Payment:
        """Return the newest row for a transaction key.

        Raises:
            LedgerError: When the query fails or no row exists
        """
        stmt = (
            select(Payment)
            .where(Payment.transaction_key == transaction_key)
            .order_by(Payment.created_at.desc())
            .limit(1)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise LedgerError(f"payment 조회 실패: {e}") from e

        record = result.scalars().first()
        if record is None:
            raise LedgerError("payment 조회 실패: 레코드를 찾을 수 없습니다")
        return record

    async def record_cancellation(self, record: Payment) -> Payment:
        """Append a Cancel row mirroring ``record`` with the amount negated."""
        cancellation = Payment(
            transaction_key=record.transaction_key,
            amount=-record.amount,
            status=PaymentStatus.cancel,
            start_at=record.start_at,
            end_at=record.end_at,
            end_grace_at=record.end_grace_at,
            next_schedule_at=record.next_schedule_at,
            next_schedule_id=record.next_schedule_id,
        )
        logger.info(f"Recording cancellation: transaction_key={record.transaction_key}")
        try:
            return await self._add(cancellation)
        except LedgerError as e:
            raise LedgerError(f"취소 레코드 등록 실패: {e}") from e

    async def list_payments(self) -> List[Payment]:
        try:
            result = await self.db.execute(select(Payment).order_by(Payment.created_at.desc()))
        except SQLAlchemyError as e:
            raise LedgerError(f"payment 테이블 조회 실패: {e}") from e
        return list(result.scalars().all())

    async def resolve_status(self, now: Optional[datetime] = None) -> SubscriptionStatusResult:
        """Derive the current subscription status from the whole ledger.

        Errors are reported in the result instead of raised; the caller always
        gets a status, falling back to ``free``.
        """
        now = ensure_utc(now or get_current_utc_datetime())
        checklist = Checklist()

        try:
            payments = await self.list_payments()
        except LedgerError as e:
            logger.error(f"Subscription status lookup failed: {e}")
            checklist.failed("fetch-all-payments", str(e))
            checklist.failed("handle-error", str(e))
            return SubscriptionStatusResult(SubscriptionStatus.free, error=str(e), checklist=checklist)

        checklist.passed("fetch-all-payments", f"payment 테이블 조회 성공 (총 {len(payments)}건)")

        if not payments:
            checklist.passed("check-payment-records", "결제 레코드가 없음 - Free 상태")
            return SubscriptionStatusResult(SubscriptionStatus.free, checklist=checklist)

        latest = latest_per_transaction_key(payments)
        checklist.passed(
            "group-by-transaction-key",
            f"transaction_key로 그룹화 완료 ({len(latest)}개 그룹)",
        )

        active = [p for p in latest if is_active(p, now)]
        checklist.passed("filter-active-subscriptions", f"활성 구독 필터링 완료 ({len(active)}건)")

        if active:
            key = active[0].transaction_key
            checklist.passed("set-subscription-status", f"구독중 상태 설정 (transaction_key: {key})")
            return SubscriptionStatusResult(SubscriptionStatus.subscribed, transaction_key=key, checklist=checklist)

        checklist.passed("set-subscription-status", "Free 상태 설정")
        return SubscriptionStatusResult(SubscriptionStatus.free, checklist=checklist)
