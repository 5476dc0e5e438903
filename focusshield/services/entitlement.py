from typing import Optional

from ..constants import FREE_TIER_REPORT_WEEKS
from ..schemas.billing import SubscriptionStatus


def is_week_locked(is_pro: bool, week_offset: int, free_tier_weeks: int = FREE_TIER_REPORT_WEEKS) -> bool:
    """Free accounts only see the most recent free_tier_weeks weeks."""
    return not is_pro and week_offset >= free_tier_weeks


def is_pro_subscription(subscription: Optional[SubscriptionStatus]) -> bool:
    return subscription is not None and subscription.status == 'active'


def plan_for_subscription(
    subscription: Optional[SubscriptionStatus],
    pro_price_id: Optional[str] = None,
    pro_plus_price_id: Optional[str] = None,
) -> str:
    """Plan tier from an active subscription's price id. Unknown prices count as pro."""
    if not is_pro_subscription(subscription):
        return 'free'
    if pro_plus_price_id and subscription.price_id == pro_plus_price_id:
        return 'pro_plus'
    return 'pro'
