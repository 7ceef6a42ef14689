"""
Organization (tenant) API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
import structlog
import uuid

from agencyhub.core.dependencies import get_store, require_access
from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.permissions import Permission
from agencyhub.core.store import AccessStore, RecordNotFoundError
from agencyhub.schemas.organization import ModulesUpdate, OrganizationCreate, OrganizationResponse
from agencyhub.schemas.user import ActivationUpdate
from agencyhub.services import organizations

logger = structlog.get_logger(__name__)
router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Tenant not found"
    )


@router.get("/current", response_model=OrganizationResponse)
async def get_current_tenant(snapshot: AccessSnapshot = Depends(require_access())):
    """Get the signed-in user's organization"""
    if snapshot.tenant is None:
        raise _not_found()
    return snapshot.tenant


@router.put("/current/modules", response_model=OrganizationResponse)
async def update_current_modules(
    update: ModulesUpdate,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_TENANT_SETTINGS)),
    store: AccessStore = Depends(get_store),
):
    """Update the modules of the signed-in user's organization"""
    if snapshot.tenant is None:
        raise _not_found()
    return await organizations.update_modules(store, snapshot.tenant.id, update.allowed_modules)


@router.post("/", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: OrganizationCreate,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_TENANTS)),
    store: AccessStore = Depends(get_store),
):
    """Create a new organization"""
    return await organizations.create_organization(store, data, created_by=snapshot.profile.uid)


@router.get("/", response_model=List[OrganizationResponse])
async def list_tenants(
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_ALL_TENANTS)),
    store: AccessStore = Depends(get_store),
):
    """List all organizations"""
    return await store.list_organizations()


@router.put("/{tenant_id}/active", response_model=OrganizationResponse)
async def set_tenant_active(
    tenant_id: uuid.UUID,
    update: ActivationUpdate,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_TENANTS)),
    store: AccessStore = Depends(get_store),
):
    """Activate or deactivate an organization

    The flag is recorded for administration only. The access guard does not
    consult it; suspend the subscription to cut off an organization.
    """
    try:
        return await organizations.set_active(store, tenant_id, update.is_active)
    except RecordNotFoundError:
        raise _not_found()


@router.put("/{tenant_id}/modules", response_model=OrganizationResponse)
async def update_tenant_modules(
    tenant_id: uuid.UUID,
    update: ModulesUpdate,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_TENANTS)),
    store: AccessStore = Depends(get_store),
):
    """Set the modules an organization is entitled to"""
    try:
        return await organizations.update_modules(store, tenant_id, update.allowed_modules)
    except RecordNotFoundError:
        raise _not_found()
