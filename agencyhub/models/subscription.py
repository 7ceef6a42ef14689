"""
Subscription model and static plan catalogue
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
import uuid

from pydantic import BaseModel


class SubscriptionStatus(str, Enum):
    """Status of a subscription"""
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


class SubscriptionPlan(str, Enum):
    """Billing plans"""
    TRIAL = "trial"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


# Limit value meaning "no limit"
UNLIMITED = -1


class PlanDetails(BaseModel):
    """Static entitlement limits and pricing for a plan"""
    plan: SubscriptionPlan
    name: str
    price: Decimal
    currency: str
    features: List[str]
    max_users: int
    max_leads: int
    max_invoices: int
    trial_days: int


SUBSCRIPTION_PLANS: Dict[SubscriptionPlan, PlanDetails] = {
    SubscriptionPlan.TRIAL: PlanDetails(
        plan=SubscriptionPlan.TRIAL,
        name="Free Trial",
        price=Decimal("0"),
        currency="INR",
        features=["Up to 100 leads", "Basic dashboard", "Email support"],
        max_users=2,
        max_leads=100,
        max_invoices=50,
        trial_days=30,
    ),
    SubscriptionPlan.BASIC: PlanDetails(
        plan=SubscriptionPlan.BASIC,
        name="Basic Plan",
        price=Decimal("2999"),
        currency="INR",
        features=["Up to 1000 leads", "Invoice management", "Priority support", "Basic analytics"],
        max_users=5,
        max_leads=1000,
        max_invoices=500,
        trial_days=0,
    ),
    SubscriptionPlan.PREMIUM: PlanDetails(
        plan=SubscriptionPlan.PREMIUM,
        name="Premium Plan",
        price=Decimal("4999"),
        currency="INR",
        features=["Unlimited leads", "Advanced analytics", "Custom branding", "API access", "24/7 support"],
        max_users=15,
        max_leads=UNLIMITED,
        max_invoices=UNLIMITED,
        trial_days=0,
    ),
    SubscriptionPlan.ENTERPRISE: PlanDetails(
        plan=SubscriptionPlan.ENTERPRISE,
        name="Enterprise Plan",
        price=Decimal("9999"),
        currency="INR",
        features=["Everything in Premium", "White-label solution", "Dedicated support", "Custom integrations"],
        max_users=UNLIMITED,
        max_leads=UNLIMITED,
        max_invoices=UNLIMITED,
        trial_days=0,
    ),
}


class Subscription(SQLModel, table=True):
    """Subscription of an organization to a billing plan"""

    __tablename__ = "subscriptions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # One active subscription per tenant is expected but not enforced
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)

    plan: SubscriptionPlan = Field(default=SubscriptionPlan.TRIAL, nullable=False)
    status: SubscriptionStatus = Field(default=SubscriptionStatus.TRIAL, index=True, nullable=False)

    # Period
    start_date: datetime = Field(default_factory=datetime.utcnow)
    end_date: datetime = Field(index=True, description="Access ends at this instant")
    trial_end_date: Optional[datetime] = None

    # Billing
    amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    currency: str = Field(default="INR", max_length=3)
    auto_renew: bool = Field(default=True)
    payment_reference: Optional[str] = Field(default=None, max_length=255)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def plan_details(self) -> PlanDetails:
        return SUBSCRIPTION_PLANS[self.plan]

    def is_usable_at(self, now: datetime) -> bool:
        """Status is authoritative for suspension, end date for time"""
        if self.status not in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL):
            return False
        return now < self.end_date
