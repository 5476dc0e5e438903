import pytest

from focusshield.schemas.billing import SubscriptionStatus
from focusshield.services.entitlement import is_pro_subscription, is_week_locked, plan_for_subscription


@pytest.mark.parametrize("is_pro,offset,free_weeks,expected", [
    (False, 0, 2, False),
    (False, 1, 2, False),
    (False, 2, 2, True),
    (False, 11, 2, True),
    (True, 99, 2, False),
    (False, 3, 5, False),
])
def test_is_week_locked(is_pro, offset, free_weeks, expected):
    assert is_week_locked(is_pro, offset, free_weeks) is expected


class TestSubscriptionStatus:
    def test_missing_subscription_is_free(self):
        assert is_pro_subscription(None) is False
        assert plan_for_subscription(None) == "free"

    @pytest.mark.parametrize("status", ["canceled", "past_due", "trialing", None])
    def test_only_active_is_pro(self, status):
        assert is_pro_subscription(SubscriptionStatus(status=status)) is False

    def test_plan_from_price(self):
        pro = SubscriptionStatus(status="active", price_id="price_pro")
        pro_plus = SubscriptionStatus(status="active", price_id="price_plus")

        assert plan_for_subscription(pro, "price_pro", "price_plus") == "pro"
        assert plan_for_subscription(pro_plus, "price_pro", "price_plus") == "pro_plus"

    def test_unknown_price_counts_as_pro(self):
        subscription = SubscriptionStatus(status="active", price_id="price_legacy")

        assert plan_for_subscription(subscription, "price_pro", "price_plus") == "pro"
