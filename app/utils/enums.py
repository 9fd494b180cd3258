import enum


class PaymentStatus(str, enum.Enum):
    """Ledger row status. Cancellations are appended as separate rows."""
    paid = "Paid"
    cancel = "Cancel"


class WebhookPaymentStatus(str, enum.Enum):
    paid = "Paid"
    cancelled = "Cancelled"


class ChecklistStatus(str, enum.Enum):
    passed = "passed"
    failed = "failed"
    skipped = "skipped"


class SubscriptionStatus(str, enum.Enum):
    subscribed = "subscribed"
    free = "free"
