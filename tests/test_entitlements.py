"""
Unit tests for entitlement evaluation over access snapshots
"""

from datetime import timedelta

import pytest

from agencyhub.core.entitlements import SIGNED_OUT, AccessDecision, AccessSnapshot, LoaderState
from agencyhub.core.permissions import Permission, UserRole
from agencyhub.models.subscription import SubscriptionStatus
from agencyhub.models.tenant import Module
from fakes import NOW, make_organization, make_principal, make_profile, make_subscription


def ready(profile, tenant=None, subscription=None, state=LoaderState.READY):
    return AccessSnapshot(
        principal=make_principal(profile.uid),
        profile=profile,
        tenant=tenant,
        subscription=subscription,
        state=state,
    )


def test_signed_out_has_nothing():
    assert not SIGNED_OUT.is_authenticated
    assert not SIGNED_OUT.has_permission(Permission.VIEW_LEADS)
    assert not SIGNED_OUT.can_access_tenant(None)


def test_super_admin_passes_everything_without_tenant():
    snapshot = ready(make_profile(role=UserRole.SUPER_ADMIN, permissions=[]))

    for permission in Permission:
        assert snapshot.has_permission(permission)
    assert snapshot.module_access(Module.INVOICES) == AccessDecision.PERMITTED
    assert snapshot.is_subscription_active(NOW)


def test_super_admin_ignores_restrictive_tenant_and_subscription():
    tenant = make_organization(allowed_modules=[])
    subscription = make_subscription(tenant.id, status=SubscriptionStatus.EXPIRED, end_date=NOW - timedelta(days=1))
    snapshot = ready(make_profile(role=UserRole.SUPER_ADMIN), tenant, subscription)

    assert snapshot.can_access_module(Module.LEADS)
    assert snapshot.subscription_access(NOW) == AccessDecision.PERMITTED


@pytest.mark.parametrize("status, days, expected", [
    (SubscriptionStatus.TRIAL, -1, False),
    (SubscriptionStatus.TRIAL, 5, True),
    (SubscriptionStatus.ACTIVE, 5, True),
    (SubscriptionStatus.ACTIVE, -1, False),
    (SubscriptionStatus.SUSPENDED, 5, False),
    (SubscriptionStatus.CANCELLED, 5, False),
    (SubscriptionStatus.EXPIRED, 5, False),
])
def test_subscription_activity(status, days, expected):
    tenant = make_organization()
    subscription = make_subscription(tenant.id, status=status, end_date=NOW + timedelta(days=days))
    snapshot = ready(make_profile(tenant_id=tenant.id), tenant, subscription)
    assert snapshot.is_subscription_active(NOW) is expected


def test_subscription_end_date_is_exclusive():
    tenant = make_organization()
    subscription = make_subscription(tenant.id, end_date=NOW)
    snapshot = ready(make_profile(tenant_id=tenant.id), tenant, subscription)
    assert snapshot.subscription_access(NOW) == AccessDecision.DENIED


def test_module_entitlement():
    tenant = make_organization(allowed_modules=["leads"])
    snapshot = ready(make_profile(tenant_id=tenant.id), tenant)

    assert snapshot.can_access_module(Module.LEADS)
    assert snapshot.can_access_module("leads")
    assert not snapshot.can_access_module(Module.INVOICES)
    assert snapshot.module_access("invoices") == AccessDecision.DENIED


def test_module_and_subscription_fail_open_while_loading():
    tenant_id = make_organization().id
    profile = make_profile(tenant_id=tenant_id)

    resolving_tenant = ready(profile, state=LoaderState.RESOLVING_TENANT)
    assert resolving_tenant.module_access(Module.INVOICES) == AccessDecision.INDETERMINATE
    assert resolving_tenant.can_access_module(Module.INVOICES)
    assert resolving_tenant.subscription_access(NOW) == AccessDecision.INDETERMINATE
    assert resolving_tenant.is_subscription_active(NOW)

    tenant = make_organization()
    resolving_subscription = ready(profile, tenant, state=LoaderState.RESOLVING_SUBSCRIPTION)
    assert resolving_subscription.subscription_access(NOW) == AccessDecision.INDETERMINATE
    assert resolving_subscription.is_loading


def test_absent_tenant_and_subscription_after_resolution_are_permissive():
    snapshot = ready(make_profile(tenant_id=make_organization().id))
    assert snapshot.module_access(Module.INVOICES) == AccessDecision.PERMITTED
    assert snapshot.subscription_access(NOW) == AccessDecision.PERMITTED


def test_stored_permissions_win_over_role_defaults():
    # Admin role grants manage_users by default, but the stored list was edited
    admin = ready(make_profile(role=UserRole.ADMIN, permissions=["view_leads"]))
    assert admin.has_permission(Permission.VIEW_LEADS)
    assert not admin.has_permission(Permission.MANAGE_USERS)

    # Employees never get delete_leads by default, but an explicit grant counts
    employee = ready(make_profile(role=UserRole.EMPLOYEE, permissions=["delete_leads"]))
    assert employee.has_permission("delete_leads")


def test_role_and_tenant_queries():
    tenant = make_organization()
    snapshot = ready(make_profile(role=UserRole.TENANT_ADMIN, tenant_id=tenant.id), tenant)

    assert snapshot.is_role(UserRole.TENANT_ADMIN)
    assert snapshot.is_role("tenant_admin")
    assert not snapshot.is_role(UserRole.SUPER_ADMIN)
    assert snapshot.is_tenant_bound
    assert snapshot.tenant_id == tenant.id
    assert snapshot.can_access_tenant(tenant.id)
    assert not snapshot.can_access_tenant(make_organization().id)


def test_super_admin_reaches_every_tenant():
    snapshot = ready(make_profile(role=UserRole.SUPER_ADMIN))
    assert snapshot.can_access_tenant(make_organization().id)
    assert not snapshot.is_tenant_bound
