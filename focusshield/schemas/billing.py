from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SubscriptionStatus(BaseModel):
    status: Optional[str] = None
    price_id: Optional[str] = None
    current_period_end: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionResponse(SubscriptionStatus):
    plan: str = 'free'
    is_pro: bool = False


class CheckoutRequest(BaseModel):
    price_id: str


class CheckoutResponse(BaseModel):
    url: str
