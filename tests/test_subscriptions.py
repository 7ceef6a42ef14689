"""
Tests for subscription lifecycle and plan limits
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from agencyhub.core.store import RecordNotFoundError
from agencyhub.models.subscription import SubscriptionPlan, SubscriptionStatus
from agencyhub.services import subscriptions
from fakes import NOW, make_organization, make_subscription


def test_add_one_month_clamps_short_months():
    assert subscriptions.add_one_month(datetime(2024, 1, 31, 9, 30)) == datetime(2024, 2, 29, 9, 30)
    assert subscriptions.add_one_month(datetime(2024, 12, 15)) == datetime(2025, 1, 15)
    assert subscriptions.add_one_month(datetime(2023, 3, 31)) == datetime(2023, 4, 30)


def test_new_trial_subscription():
    tenant_id = make_organization().id
    subscription = subscriptions.new_subscription(tenant_id, SubscriptionPlan.TRIAL, NOW)

    assert subscription.status == SubscriptionStatus.TRIAL
    assert subscription.end_date == NOW + timedelta(days=30)
    assert subscription.trial_end_date == subscription.end_date
    assert subscription.amount == Decimal("0")
    assert subscription.currency == "INR"


def test_new_paid_subscription_runs_one_month():
    tenant_id = make_organization().id
    subscription = subscriptions.new_subscription(
        tenant_id, SubscriptionPlan.PREMIUM, NOW, payment_reference="pay_123"
    )

    assert subscription.status == SubscriptionStatus.ACTIVE
    assert subscription.end_date == datetime(2024, 4, 1, 12, 0, 0)
    assert subscription.trial_end_date is None
    assert subscription.amount == Decimal("4999")
    assert subscription.payment_reference == "pay_123"


@pytest.mark.asyncio
async def test_start_plan_links_organization(store):
    organization = make_organization()
    store.organizations[organization.id] = organization

    subscription = await subscriptions.start_plan(
        store, organization.id, SubscriptionPlan.BASIC, now=NOW, payment_reference="pay_123"
    )

    assert store.subscriptions[subscription.id] is subscription
    assert organization.subscription_id == subscription.id
    assert organization.max_users == 5


@pytest.mark.asyncio
async def test_start_plan_requires_organization(store):
    with pytest.raises(RecordNotFoundError):
        await subscriptions.start_plan(
            store, make_organization().id, SubscriptionPlan.BASIC, payment_reference="pay_123"
        )
    assert store.subscriptions == {}


@pytest.mark.asyncio
async def test_paid_plan_requires_payment_reference(store):
    organization = make_organization()
    store.organizations[organization.id] = organization

    for reference in (None, "  "):
        with pytest.raises(subscriptions.PaymentRequiredError):
            await subscriptions.start_plan(
                store, organization.id, SubscriptionPlan.ENTERPRISE, now=NOW, payment_reference=reference
            )

    assert store.subscriptions == {}
    assert organization.subscription_id is None


@pytest.mark.asyncio
async def test_trial_only_once(store):
    organization = make_organization()
    store.organizations[organization.id] = organization

    trial = await subscriptions.start_plan(store, organization.id, SubscriptionPlan.TRIAL, now=NOW)
    assert trial.status == SubscriptionStatus.TRIAL

    with pytest.raises(subscriptions.TrialUnavailableError):
        await subscriptions.start_plan(store, organization.id, SubscriptionPlan.TRIAL, now=NOW)
    assert list(store.subscriptions) == [trial.id]


@pytest.mark.asyncio
async def test_suspend_and_cancel(store):
    subscription = make_subscription(make_organization().id)
    store.subscriptions[subscription.id] = subscription

    await subscriptions.suspend(store, subscription.id)
    assert subscription.status == SubscriptionStatus.SUSPENDED
    assert not subscription.is_usable_at(NOW)

    await subscriptions.cancel(store, subscription.id)
    assert subscription.status == SubscriptionStatus.CANCELLED
    assert subscription.auto_renew is False


def test_days_until_expiry_rounds_up():
    subscription = make_subscription(make_organization().id, end_date=NOW + timedelta(days=2, hours=1))
    assert subscriptions.days_until_expiry(subscription, NOW) == 3
    assert subscriptions.days_until_expiry(None, NOW) == 0

    expired = make_subscription(make_organization().id, end_date=NOW - timedelta(days=2))
    assert subscriptions.days_until_expiry(expired, NOW) == -2


def test_within_plan_limit():
    tenant_id = make_organization().id
    trial = make_subscription(tenant_id, plan=SubscriptionPlan.TRIAL)
    enterprise = make_subscription(tenant_id, plan=SubscriptionPlan.ENTERPRISE)

    assert subscriptions.within_plan_limit(trial, "leads", 99)
    assert not subscriptions.within_plan_limit(trial, "leads", 100)
    assert not subscriptions.within_plan_limit(trial, "users", 2)
    assert subscriptions.within_plan_limit(enterprise, "invoices", 10_000)
    assert not subscriptions.within_plan_limit(None, "leads", 0)

    with pytest.raises(ValueError):
        subscriptions.within_plan_limit(trial, "widgets", 0)
