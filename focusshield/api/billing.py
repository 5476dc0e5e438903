from typing import Optional
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import stripe

from ..config import Settings, get_settings
from ..database import get_db
from ..schemas.billing import CheckoutRequest, CheckoutResponse
from ..schemas.user import AuthUser
from ..services import billing_service
from .auth import get_optional_user
from .metrics import webhook_events

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stripe", tags=["billing"])


@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    settings: Settings = Depends(get_settings)
):
    if not settings.payments_configured:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stripe is not configured")
    if not body.price_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Price ID is required")
    if current_user is None or not current_user.email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User must be logged in to subscribe")

    try:
        url = billing_service.create_checkout_session(body.price_id, current_user, settings)
    except stripe.StripeError as e:
        logger.error("Checkout session error: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session"
        )
    return CheckoutResponse(url=url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    Payment provider events. Always acknowledged once decoded, so the provider
    does not retry events we failed to apply.
    """
    if not settings.payments_configured:
        logger.error("Stripe secret key not configured")
        return {"received": True}

    payload = await request.body()
    try:
        event = billing_service.parse_webhook_event(payload, stripe_signature, settings)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.error("Webhook signature verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook signature verification failed"
        )

    webhook_events.labels(event_type=str(event.get("type"))).inc()
    try:
        billing_service.handle_webhook_event(db, event)
    except (SQLAlchemyError, stripe.StripeError) as e:
        db.rollback()
        logger.exception("Webhook handler error: %s", e)

    return {"received": True}
