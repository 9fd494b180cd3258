"""Payment routes package - PortOne billing-key subscription."""

from .payments import router as payments_router
from .portone_webhooks import router as portone_webhooks_router

__all__ = ["payments_router", "portone_webhooks_router"]
