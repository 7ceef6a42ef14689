"""
Integration tests for tenant isolation

Verifies that multi-tenant isolation works correctly:
1. Tenant admins only see and manage users of their own organization
2. Cross-tenant user requests return 404 Not Found
3. Each organization's entitlements apply only to its own members
"""

import pytest
import pytest_asyncio

from fakes import REGISTRATION, register_organization

BETA = {
    "organization": {
        "name": "Beta",
        "contact_email": "ops@beta.example.com",
        "contact_phone": "+20000000000",
        "selected_modules": ["leads", "invoices"],
    },
    "admin": {"name": "Sam", "email": "sam@beta.example.com", "password": "secret2"},
}


@pytest_asyncio.fixture
async def tenants(client):
    acme = await register_organization(client, REGISTRATION)
    beta = await register_organization(client, BETA)
    return acme, beta


@pytest.mark.asyncio
async def test_user_lists_are_scoped(client, tenants):
    acme, beta = tenants

    acme_users = (await client.get("/api/v1/users/", headers=acme)).json()
    beta_users = (await client.get("/api/v1/users/", headers=beta)).json()

    assert [u["email"] for u in acme_users] == ["jo@acme.com"]
    assert [u["email"] for u in beta_users] == ["sam@beta.example.com"]


@pytest.mark.asyncio
async def test_tenant_filter_is_ignored_for_tenant_admins(client, tenants):
    acme, beta = tenants
    beta_tenant = (await client.get("/api/v1/tenants/current", headers=beta)).json()["id"]

    response = await client.get("/api/v1/users/", params={"tenant_id": beta_tenant}, headers=acme)
    assert [u["email"] for u in response.json()] == ["jo@acme.com"]


@pytest.mark.asyncio
async def test_crosstenant_user_update_not_found(client, tenants, store):
    acme, beta = tenants
    sam = next(p for p in store.profiles.values() if p.email == "sam@beta.example.com")

    response = await client.put(f"/api/v1/users/{sam.uid}/active", json={"is_active": False}, headers=acme)
    assert response.status_code == 404
    assert store.profiles[sam.uid].is_active is True


@pytest.mark.asyncio
async def test_crosstenant_delete_not_found(client, tenants, store):
    acme, _ = tenants
    sam = next(p for p in store.profiles.values() if p.email == "sam@beta.example.com")

    response = await client.delete(f"/api/v1/users/{sam.uid}", headers=acme)
    assert response.status_code == 404
    assert sam.uid in store.profiles


@pytest.mark.asyncio
async def test_module_entitlements_are_per_tenant(client, tenants):
    acme, beta = tenants
    params = {"module": "invoices"}

    assert (await client.get("/api/v1/access/check", params=params, headers=acme)).json()["outcome"] == "block"
    assert (await client.get("/api/v1/access/check", params=params, headers=beta)).json()["outcome"] == "allow"


@pytest.mark.asyncio
async def test_tenant_admin_cannot_list_all_tenants(client, tenants):
    acme, _ = tenants
    response = await client.get("/api/v1/tenants/", headers=acme)
    assert response.status_code == 307
