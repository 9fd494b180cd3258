import uuid
from sqlalchemy import (
    Column, String, Integer, DateTime, Enum, Index, func
)
from sqlalchemy.dialects.postgresql import UUID
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import PaymentStatus


class Payment(Base):
    """Append-only subscription payment ledger.

    A cancellation never updates the paid row; it is stored as a new row with
    the same transaction_key, a negated amount and status ``Cancel``.
    """
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_key = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # KRW, negative for cancellations
    # Stored by value ("Paid" / "Cancel")
    status = Column(
        Enum(PaymentStatus, name="paymentstatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    end_grace_at = Column(DateTime(timezone=True), nullable=False)
    next_schedule_at = Column(DateTime(timezone=True), nullable=False)
    next_schedule_id = Column(String, nullable=False)

    # Python-side default keeps sub-second ordering between a paid row and its cancellation
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc_datetime,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_payments_transaction_key_created_at", "transaction_key", "created_at"),
    )

    def __repr__(self):
        return f"<Payment(transaction_key={self.transaction_key}, status={self.status}, amount={self.amount})>"
