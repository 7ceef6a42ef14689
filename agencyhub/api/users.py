"""
User management API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List, Optional
import structlog
import uuid

from agencyhub.core.dependencies import get_identity_provider, get_store, require_access
from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.identity import IdentityProvider
from agencyhub.core.permissions import Permission
from agencyhub.core.store import AccessStore, RecordNotFoundError
from agencyhub.schemas.user import ActivationUpdate, PermissionsUpdate, RoleUpdate, UserResponse
from agencyhub.services.user_admin import (
    PermissionEscalationError,
    ProtectedAccountError,
    UserAdministration,
)

logger = structlog.get_logger(__name__)
router = APIRouter()

manage_users = require_access(Permission.MANAGE_USERS)


def get_user_admin(
    store: AccessStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> UserAdministration:
    return UserAdministration(store, identity)


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="User not found"
    )


def _refused(error: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=str(error)
    )


@router.get("/", response_model=List[UserResponse])
async def list_users(
    tenant_id: Optional[uuid.UUID] = None,
    snapshot: AccessSnapshot = Depends(manage_users),
    admin: UserAdministration = Depends(get_user_admin),
):
    """List users visible to the caller"""
    return await admin.list_users(snapshot, tenant_id)


@router.put("/{uid}/active", response_model=UserResponse)
async def set_user_active(
    uid: str,
    update: ActivationUpdate,
    snapshot: AccessSnapshot = Depends(manage_users),
    admin: UserAdministration = Depends(get_user_admin),
):
    """Activate or deactivate a user"""
    try:
        return await admin.set_active(snapshot, uid, update.is_active)
    except RecordNotFoundError:
        raise _not_found()
    except ProtectedAccountError as e:
        raise _refused(e)


@router.put("/{uid}/role", response_model=UserResponse)
async def change_user_role(
    uid: str,
    update: RoleUpdate,
    snapshot: AccessSnapshot = Depends(manage_users),
    admin: UserAdministration = Depends(get_user_admin),
):
    """Change a user's role"""
    try:
        return await admin.change_role(snapshot, uid, update.role, update.reconcile_permissions)
    except RecordNotFoundError:
        raise _not_found()
    except (ProtectedAccountError, PermissionEscalationError) as e:
        raise _refused(e)


@router.put("/{uid}/permissions", response_model=UserResponse)
async def set_user_permissions(
    uid: str,
    update: PermissionsUpdate,
    snapshot: AccessSnapshot = Depends(manage_users),
    admin: UserAdministration = Depends(get_user_admin),
):
    """Replace a user's stored permissions"""
    try:
        return await admin.set_permissions(snapshot, uid, update.permissions)
    except RecordNotFoundError:
        raise _not_found()
    except PermissionEscalationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{uid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    uid: str,
    snapshot: AccessSnapshot = Depends(manage_users),
    admin: UserAdministration = Depends(get_user_admin),
):
    """Delete a user and their account"""
    try:
        await admin.delete_user(snapshot, uid)
    except RecordNotFoundError:
        raise _not_found()
    except ProtectedAccountError as e:
        raise _refused(e)
