"""
Tests for user and organization administration
"""

import pytest

from agencyhub.core.entitlements import AccessSnapshot, LoaderState
from agencyhub.core.permissions import Permission, UserRole
from agencyhub.core.store import RecordNotFoundError
from agencyhub.models.tenant import Module
from agencyhub.schemas.organization import OrganizationCreate
from agencyhub.services import organizations
from agencyhub.services.user_admin import (
    PermissionEscalationError,
    ProtectedAccountError,
    UserAdministration,
)
from fakes import make_organization, make_principal, make_profile


def acting(profile, tenant=None):
    return AccessSnapshot(
        principal=make_principal(profile.uid),
        profile=profile,
        tenant=tenant,
        state=LoaderState.READY,
    )


@pytest.fixture
def acme(store):
    organization = make_organization()
    store.organizations[organization.id] = organization
    return organization


@pytest.fixture
def admin(store, acme):
    profile = make_profile(uid="admin-1", role=UserRole.TENANT_ADMIN, tenant_id=acme.id)
    store.profiles[profile.uid] = profile
    return acting(profile, acme)


@pytest.fixture
def service(store, identity):
    return UserAdministration(store, identity)


@pytest.mark.asyncio
async def test_deactivate_user(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id)

    updated = await service.set_active(admin, "emp-1", False)

    assert updated.is_active is False
    assert store.profiles["emp-1"].is_active is False


@pytest.mark.asyncio
async def test_other_tenant_users_are_invisible(service, store, admin):
    outsider = make_profile(uid="emp-9", tenant_id=make_organization().id)
    store.profiles[outsider.uid] = outsider

    with pytest.raises(RecordNotFoundError):
        await service.set_active(admin, "emp-9", False)
    assert outsider.is_active


@pytest.mark.asyncio
async def test_super_admin_is_protected(service, store):
    root = make_profile(uid="root", role=UserRole.SUPER_ADMIN)
    other = make_profile(uid="root-2", role=UserRole.SUPER_ADMIN)
    store.profiles.update({root.uid: root, other.uid: other})
    actor = acting(root)

    with pytest.raises(ProtectedAccountError):
        await service.set_active(actor, "root-2", False)
    with pytest.raises(ProtectedAccountError):
        await service.delete_user(actor, "root-2")


@pytest.mark.asyncio
async def test_change_role_reconciles_permissions(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id)

    updated = await service.change_role(admin, "emp-1", UserRole.ADMIN)

    assert updated.role == UserRole.ADMIN
    assert Permission.MANAGE_USERS.value in updated.permissions


@pytest.mark.asyncio
async def test_change_role_without_reconcile_keeps_stored_permissions(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id, permissions=["view_leads"])

    updated = await service.change_role(admin, "emp-1", "admin", reconcile_permissions=False)

    assert updated.role == UserRole.ADMIN
    assert updated.permissions == ["view_leads"]
    assert not acting(updated, acme).has_permission(Permission.MANAGE_USERS)

    reconciled = await service.reconcile_permissions(admin, "emp-1")
    assert Permission.MANAGE_USERS.value in reconciled.permissions


@pytest.mark.asyncio
async def test_tenant_admin_cannot_grant_super_admin(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id)

    with pytest.raises(PermissionEscalationError):
        await service.change_role(admin, "emp-1", UserRole.SUPER_ADMIN)


@pytest.mark.asyncio
async def test_set_permissions_within_role(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id)

    updated = await service.set_permissions(admin, "emp-1", [Permission.VIEW_LEADS, "view_dashboard"])
    assert updated.permissions == ["view_dashboard", "view_leads"]

    with pytest.raises(PermissionEscalationError):
        await service.set_permissions(admin, "emp-1", [Permission.DELETE_LEADS])


@pytest.mark.asyncio
async def test_delete_user_removes_account(service, store, identity, admin, acme):
    principal = identity.add_account("emp@example.com", "secret1")
    store.profiles[principal.uid] = make_profile(uid=principal.uid, tenant_id=acme.id)

    await service.delete_user(admin, principal.uid)

    assert principal.uid not in store.profiles
    assert identity.deleted == [principal.uid]


@pytest.mark.asyncio
async def test_list_users_scoped_to_tenant(service, store, admin, acme):
    store.profiles["emp-1"] = make_profile(uid="emp-1", tenant_id=acme.id)
    store.profiles["emp-9"] = make_profile(uid="emp-9", tenant_id=make_organization().id)

    users = await service.list_users(admin)
    assert {u.uid for u in users} == {"admin-1", "emp-1"}

    root = acting(make_profile(uid="root", role=UserRole.SUPER_ADMIN))
    assert len(await service.list_users(root)) == 3


@pytest.mark.asyncio
async def test_organization_administration(store):
    created = await organizations.create_organization(
        store,
        OrganizationCreate(name="Beta", contact_email="beta@example.com", allowed_modules=[Module.INVOICES]),
        created_by="root",
    )
    assert created.allowed_modules == ["invoices"]
    assert created.created_by == "root"
    assert created.subscription_id is None

    updated = await organizations.update_modules(store, created.id, ["leads", Module.INVOICES, "leads"])
    assert updated.allowed_modules == ["leads", "invoices"]

    deactivated = await organizations.set_active(store, created.id, False)
    assert deactivated.is_active is False

    with pytest.raises(ValueError):
        await organizations.update_modules(store, created.id, ["payroll"])
