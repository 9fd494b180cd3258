# Main Router - app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1.routes.magazines.magazines import router as magazines_router
from app.api.v1.routes.payments import (
    payments_router,
    portone_webhooks_router,
)

router = APIRouter()

router.include_router(magazines_router)
router.include_router(payments_router)

# Webhook routes (called by PortOne, no user authentication)
router.include_router(portone_webhooks_router)
