from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..constants import PLANS
from ..database import get_db
from ..schemas.billing import SubscriptionResponse
from ..schemas.user import AuthUser
from ..services.entitlement import is_pro_subscription, plan_for_subscription
from ..services.remote_store import SqlRemoteStore
from .auth import get_current_user

router = APIRouter(tags=["subscription"])


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Subscription status of the current user. Users without a row are on the free plan."""
    subscription = SqlRemoteStore(db, user_id=current_user.id).get_subscription(current_user.id)
    plan = plan_for_subscription(subscription, settings.stripe_pro_price_id, settings.stripe_pro_plus_price_id)
    if subscription is None:
        return SubscriptionResponse(plan=plan)
    return SubscriptionResponse(
        **subscription.model_dump(),
        plan=plan,
        is_pro=is_pro_subscription(subscription),
    )


@router.get("/subscription/plans")
async def list_plans(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Plan catalogue for the pricing page. No authentication required."""
    price_ids = {'pro': settings.stripe_pro_price_id, 'pro_plus': settings.stripe_pro_plus_price_id}
    return {
        slug: {**plan, 'price_id': price_ids.get(slug)}
        for slug, plan in PLANS.items()
    }
