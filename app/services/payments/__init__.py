"""PortOne billing-key payments and the subscription ledger."""

from .portone_client import PortOneClient, PortOneError, get_portone_client
from .subscription_service import LedgerError, SubscriptionService

__all__ = [
    "PortOneClient",
    "PortOneError",
    "get_portone_client",
    "LedgerError",
    "SubscriptionService",
]
