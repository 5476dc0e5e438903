"""
Billing Service

Payment-provider boundary. Checkout sessions are created with Stripe; webhook
events update the subscription row keyed by user id. The rest of the system
only ever reads that row's status and price id.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from ..config import Settings
from ..constants import APP_SLUG
from ..models.models import Subscription
from ..schemas.user import AuthUser

logger = logging.getLogger(__name__)

HANDLED_EVENTS = (
    "checkout.session.completed",
    "customer.subscription.updated",
    "customer.subscription.deleted",
)

SubscriptionRetriever = Callable[[str], Dict[str, Any]]


class PaymentsNotConfiguredError(Exception):
    """STRIPE_SECRET_KEY is missing."""


def create_checkout_session(price_id: str, user: AuthUser, settings: Settings) -> str:
    """
    Create a subscription checkout session for user.

    Returns:
        The hosted checkout URL
    """
    if not settings.payments_configured:
        raise PaymentsNotConfiguredError("Stripe is not configured")

    stripe.api_key = settings.stripe_secret_key
    metadata = {"app_name": APP_SLUG, "user_id": user.id}
    session = stripe.checkout.Session.create(
        mode="subscription",
        payment_method_types=["card"],
        customer_email=user.email,
        line_items=[{"price": price_id, "quantity": 1}],
        metadata=metadata,
        subscription_data={"metadata": metadata},
        success_url=f"{settings.app_url}/pricing?success=true",
        cancel_url=f"{settings.app_url}/pricing?canceled=true",
    )
    return session.url


def parse_webhook_event(payload: bytes, signature: Optional[str], settings: Settings) -> Dict[str, Any]:
    """
    Verify (when a webhook secret is configured) and decode an event.

    Raises:
        ValueError: Payload is not valid JSON
        stripe.SignatureVerificationError: Signature is missing or does not match
    """
    if settings.stripe_webhook_secret:
        if not signature:
            raise stripe.SignatureVerificationError("Missing Stripe-Signature header", signature)
        stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
    return json.loads(payload)


def _retrieve_subscription(subscription_id: str) -> Dict[str, Any]:
    return json.loads(str(stripe.Subscription.retrieve(subscription_id)))


def _metadata_user_id(obj: Dict[str, Any]) -> Optional[str]:
    return (obj.get("metadata") or {}).get("user_id")


def _period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    items = (subscription.get("items") or {}).get("data") or []
    timestamp = (items[0].get("current_period_end") if items else None) or subscription.get("current_period_end")
    return datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp else None


def _price_id(subscription: Dict[str, Any]) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    return ((items[0].get("price") or {}).get("id")) if items else None


def upsert_subscription(db: Session, user_id: str, **fields) -> Subscription:
    subscription = db.get(Subscription, user_id)
    if subscription is None:
        subscription = Subscription(user_id=user_id)
        db.add(subscription)
    for key, value in fields.items():
        setattr(subscription, key, value)
    subscription.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(subscription)
    return subscription


def _store_subscription(db: Session, user_id: str, subscription: Dict[str, Any], customer_id: Optional[str]) -> Subscription:
    return upsert_subscription(
        db,
        user_id,
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription.get("id"),
        status=subscription.get("status"),
        price_id=_price_id(subscription),
        current_period_end=_period_end(subscription),
    )


def handle_checkout_completed(
    db: Session,
    session: Dict[str, Any],
    retrieve_subscription: SubscriptionRetriever = _retrieve_subscription,
) -> Optional[Subscription]:
    user_id = _metadata_user_id(session)
    if not user_id:
        logger.warning("No user_id in checkout session metadata")
        return None

    subscription_id = session.get("subscription")
    if not subscription_id:
        logger.warning("No subscription ID in checkout session")
        return None

    subscription = retrieve_subscription(subscription_id)
    return _store_subscription(db, user_id, subscription, session.get("customer"))


def handle_subscription_updated(db: Session, subscription: Dict[str, Any]) -> Optional[Subscription]:
    user_id = _metadata_user_id(subscription)
    if not user_id:
        logger.warning("No user_id in subscription metadata")
        return None
    return _store_subscription(db, user_id, subscription, subscription.get("customer"))


def handle_subscription_deleted(db: Session, subscription: Dict[str, Any]) -> Optional[Subscription]:
    user_id = _metadata_user_id(subscription)
    if not user_id:
        logger.warning("No user_id in subscription metadata")
        return None

    row = db.get(Subscription, user_id)
    if row is None:
        return None
    row.status = 'canceled'
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(row)
    return row


def handle_webhook_event(
    db: Session,
    event: Dict[str, Any],
    retrieve_subscription: SubscriptionRetriever = _retrieve_subscription,
) -> Optional[Subscription]:
    """Dispatch a decoded event. Unhandled types are logged and ignored."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        return handle_checkout_completed(db, obj, retrieve_subscription)
    if event_type == "customer.subscription.updated":
        return handle_subscription_updated(db, obj)
    if event_type == "customer.subscription.deleted":
        return handle_subscription_deleted(db, obj)

    logger.info("Unhandled event type: %s", event_type)
    return None
