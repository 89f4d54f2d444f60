"""
Payment provider callback.

The provider calls this endpoint when an online payment for a checkout
attempt changes state. A "succeeded" status verifies the checkout gate,
which is what finally allows the order to be written.

Security:
- Shared secret in the X-Payment-Secret header, compared in constant time
- Endpoint answers 500 while PAYMENT_WEBHOOK_SECRET is not configured
"""

import hmac
import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Request, HTTPException, status
from pydantic import BaseModel, Field

import config
from exceptions.checkout import InvalidCheckoutStateException
from exceptions.payment import CheckoutNotFoundException, PaymentMethodNotSelectedException
from services.payment import PaymentService

logger = logging.getLogger(__name__)

payment_webhook_router = APIRouter(prefix="/api/payment", tags=["payment"])


def generate_correlation_id() -> str:
    """Generate unique correlation ID for request tracing."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


class PaymentWebhookPayload(BaseModel):
    """Status update for one checkout attempt."""
    checkout_id: str = Field(..., min_length=1, max_length=64, description="Checkout attempt ID")
    status: str = Field(..., min_length=1, max_length=32, description="Provider payment status")
    reference: str | None = Field(None, max_length=255, description="Provider transaction reference")


@payment_webhook_router.post("/webhook")
async def payment_webhook(request: Request, payload: PaymentWebhookPayload):
    """
    Receive a payment status update from the payment provider.

    Request Headers:
        X-Payment-Secret: shared secret configured at the provider

    Request Body:
        {
            "checkout_id": "5f0c...",
            "status": "succeeded",
            "reference": "pay_29QQoUBi66xm2f"
        }

    Returns:
        200: Update applied ("verified" tells whether the checkout may now be finalized)
        401: Missing or wrong secret
        404: No checkout with this id is awaiting payment
        409: Checkout cannot accept a payment confirmation in its current state
        500: Webhook secret not configured
    """
    correlation_id = generate_correlation_id()

    if not config.PAYMENT_WEBHOOK_SECRET:
        logger.error(f"[{correlation_id}] Payment webhook called but PAYMENT_WEBHOOK_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Not configured"
        )

    incoming_secret = request.headers.get("X-Payment-Secret", "")
    if not hmac.compare_digest(incoming_secret.encode(), config.PAYMENT_WEBHOOK_SECRET.encode()):
        logger.warning(f"[{correlation_id}] Rejected payment webhook for checkout {payload.checkout_id}: bad secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

    logger.info(f"[{correlation_id}] Payment status '{payload.status}' for checkout {payload.checkout_id}")

    try:
        verified = PaymentService.handle_provider_event(
            checkout_id=payload.checkout_id,
            status=payload.status,
            reference=payload.reference
        )
    except CheckoutNotFoundException as e:
        logger.warning(f"[{correlation_id}] {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (InvalidCheckoutStateException, PaymentMethodNotSelectedException) as e:
        logger.warning(f"[{correlation_id}] {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return {"success": True, "checkout_id": payload.checkout_id, "verified": verified}
