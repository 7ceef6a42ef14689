"""
Subscription lifecycle and advisory plan limits

Plan limits are informational: nothing in the access path consults them.
Feature code may call within_plan_limit() before creating records.
"""

from calendar import monthrange
from datetime import datetime, timedelta
from typing import Optional
import math
import uuid

import structlog

from agencyhub.core.config import get_settings
from agencyhub.core.store import AccessStore, RecordNotFoundError
from agencyhub.models.subscription import (
    SUBSCRIPTION_PLANS,
    UNLIMITED,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)

logger = structlog.get_logger(__name__)
settings = get_settings()

_LIMIT_FIELDS = {
    "users": "max_users",
    "leads": "max_leads",
    "invoices": "max_invoices",
}


class SubscriptionError(Exception):
    """Plan change refused"""


class PaymentRequiredError(SubscriptionError):
    """Paid plans only become active against a recorded payment"""


class TrialUnavailableError(SubscriptionError):
    """An organization gets one trial, at registration"""


def add_one_month(moment: datetime) -> datetime:
    """Same day next month, clamped to the last day of a shorter month"""
    year = moment.year + moment.month // 12
    month = moment.month % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def new_subscription(
    tenant_id: uuid.UUID,
    plan: SubscriptionPlan,
    now: datetime,
    payment_reference: Optional[str] = None,
) -> Subscription:
    """Build an unsaved subscription for the plan starting at now"""
    details = SUBSCRIPTION_PLANS[plan]
    if plan == SubscriptionPlan.TRIAL:
        end_date = now + timedelta(days=settings.TRIAL_PERIOD_DAYS)
        return Subscription(
            tenant_id=tenant_id,
            plan=plan,
            status=SubscriptionStatus.TRIAL,
            start_date=now,
            end_date=end_date,
            trial_end_date=end_date,
            amount=details.price,
            currency=details.currency or settings.DEFAULT_CURRENCY,
            auto_renew=True,
            created_at=now,
        )

    return Subscription(
        tenant_id=tenant_id,
        plan=plan,
        status=SubscriptionStatus.ACTIVE,
        start_date=now,
        end_date=add_one_month(now),
        amount=details.price,
        currency=details.currency or settings.DEFAULT_CURRENCY,
        auto_renew=True,
        payment_reference=payment_reference,
        created_at=now,
    )


async def start_plan(
    store: AccessStore,
    tenant_id: uuid.UUID,
    plan: SubscriptionPlan,
    now: Optional[datetime] = None,
    payment_reference: Optional[str] = None,
) -> Subscription:
    """Create a subscription for the organization and link it as current

    Paid plans need a payment_reference. A trial is refused once the
    organization has had any subscription.
    """
    if plan != SubscriptionPlan.TRIAL and not (payment_reference or "").strip():
        raise PaymentRequiredError(f"A payment reference is required for the {plan.value} plan")

    organization = await store.get_organization(tenant_id)
    if organization is None:
        raise RecordNotFoundError("tenants", tenant_id)
    if plan == SubscriptionPlan.TRIAL and await store.find_subscriptions(tenant_id):
        raise TrialUnavailableError("The trial period has already been used")

    subscription = await store.save_subscription(
        new_subscription(tenant_id, plan, now or datetime.utcnow(), payment_reference)
    )
    await store.update_organization(
        tenant_id,
        subscription_id=subscription.id,
        max_users=SUBSCRIPTION_PLANS[plan].max_users,
    )
    logger.info(f"Started {plan.value} subscription {subscription.id} for tenant {tenant_id}")
    return subscription


async def set_status(
    store: AccessStore,
    subscription_id: uuid.UUID,
    status: SubscriptionStatus,
) -> Subscription:
    subscription = await store.update_subscription(subscription_id, status=status)
    logger.info(f"Subscription {subscription_id} status set to {status.value}")
    return subscription


async def suspend(store: AccessStore, subscription_id: uuid.UUID) -> Subscription:
    return await set_status(store, subscription_id, SubscriptionStatus.SUSPENDED)


async def cancel(store: AccessStore, subscription_id: uuid.UUID) -> Subscription:
    subscription = await store.update_subscription(
        subscription_id,
        status=SubscriptionStatus.CANCELLED,
        auto_renew=False,
    )
    logger.info(f"Subscription {subscription_id} cancelled")
    return subscription


def days_until_expiry(subscription: Optional[Subscription], now: Optional[datetime] = None) -> int:
    """Whole days left, rounded up; negative once expired, 0 without a subscription"""
    if subscription is None:
        return 0
    remaining = subscription.end_date - (now or datetime.utcnow())
    return math.ceil(remaining.total_seconds() / 86400)


def within_plan_limit(
    subscription: Optional[Subscription],
    resource: str,
    current_count: int,
) -> bool:
    """Whether one more users/leads/invoices record fits the plan"""
    if subscription is None:
        return False
    try:
        field = _LIMIT_FIELDS[resource]
    except KeyError:
        raise ValueError(f"Unknown plan resource: {resource}")
    limit = getattr(subscription.plan_details, field)
    return limit == UNLIMITED or current_count < limit
