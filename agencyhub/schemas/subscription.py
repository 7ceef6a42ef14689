"""
Pydantic schemas for subscriptions
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
import uuid

from agencyhub.models.subscription import SubscriptionPlan, SubscriptionStatus


class SubscriptionStart(BaseModel):
    plan: SubscriptionPlan
    payment_reference: Optional[str] = None
    # Super admins only; others always act on their own organization
    tenant_id: Optional[uuid.UUID] = None


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    plan: SubscriptionPlan
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    trial_end_date: Optional[datetime]
    amount: Decimal
    currency: str
    auto_renew: bool
    is_usable: bool = False
    days_until_expiry: int = 0

    class Config:
        from_attributes = True
