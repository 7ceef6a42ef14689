"""
User administration for tenant admins and super admins

Stored permission lists are authoritative for access checks. Changing a role
does not touch them unless reconciliation is requested, and explicitly set
permissions must stay within the role's defaults.
"""

from typing import Iterable, List, Optional, Union
import uuid

import structlog

from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.identity import IdentityProvider, UnknownAccountError
from agencyhub.core.permissions import (
    Permission,
    UserRole,
    get_permissions_for_role,
    serialize_permissions,
)
from agencyhub.core.store import AccessStore, RecordNotFoundError
from agencyhub.models.user import UserProfile

logger = structlog.get_logger(__name__)


class UserAdminError(Exception):
    """Administrative action refused"""


class ProtectedAccountError(UserAdminError):
    """Super admin accounts cannot be deactivated, demoted or deleted"""


class PermissionEscalationError(UserAdminError):
    """Requested permissions exceed what the role grants"""


class UserAdministration:
    """Profile maintenance scoped to what the acting user may manage"""

    def __init__(self, store: AccessStore, identity: Optional[IdentityProvider] = None):
        self.store = store
        self.identity = identity

    async def _target(self, actor: AccessSnapshot, uid: str) -> UserProfile:
        profile = await self.store.get_profile(uid)
        if profile is None:
            raise RecordNotFoundError("user_profiles", uid)
        # Tenant admins see only their own organization's users
        if not actor.can_access_tenant(profile.tenant_id):
            raise RecordNotFoundError("user_profiles", uid)
        return profile

    async def list_users(self, actor: AccessSnapshot, tenant_id: Optional[uuid.UUID] = None) -> List[UserProfile]:
        if actor.is_super_admin:
            return await self.store.list_profiles(tenant_id)
        if actor.tenant_id is None:
            return []
        return await self.store.list_profiles(actor.tenant_id)

    async def set_active(self, actor: AccessSnapshot, uid: str, is_active: bool) -> UserProfile:
        profile = await self._target(actor, uid)
        if profile.is_super_admin:
            raise ProtectedAccountError("Super admin accounts cannot be deactivated")
        updated = await self.store.update_profile(uid, is_active=is_active)
        logger.info(f"User {uid} {'activated' if is_active else 'deactivated'} by {actor.profile.uid}")
        return updated

    async def change_role(
        self,
        actor: AccessSnapshot,
        uid: str,
        role: Union[UserRole, str],
        reconcile_permissions: bool = True,
    ) -> UserProfile:
        role = UserRole(role)
        profile = await self._target(actor, uid)
        if profile.is_super_admin:
            raise ProtectedAccountError("Super admin accounts cannot change role")
        if role == UserRole.SUPER_ADMIN and not actor.is_super_admin:
            raise PermissionEscalationError("Only a super admin can grant the super_admin role")

        fields = {"role": role}
        if reconcile_permissions:
            fields["permissions"] = serialize_permissions(get_permissions_for_role(role))
        updated = await self.store.update_profile(uid, **fields)
        logger.info(f"User {uid} role changed to {role.value} by {actor.profile.uid}")
        return updated

    async def set_permissions(
        self,
        actor: AccessSnapshot,
        uid: str,
        permissions: Iterable[Union[Permission, str]],
    ) -> UserProfile:
        profile = await self._target(actor, uid)
        requested = set(serialize_permissions(permissions))
        allowed = set(serialize_permissions(get_permissions_for_role(profile.role)))
        extra = requested - allowed
        if extra:
            raise PermissionEscalationError(
                f"Permissions not granted by role {profile.role.value}: {', '.join(sorted(extra))}"
            )
        updated = await self.store.update_profile(uid, permissions=sorted(requested))
        logger.info(f"User {uid} permissions set by {actor.profile.uid}")
        return updated

    async def reconcile_permissions(self, actor: AccessSnapshot, uid: str) -> UserProfile:
        """Reset the stored permissions to the role defaults"""
        profile = await self._target(actor, uid)
        return await self.store.update_profile(
            uid, permissions=serialize_permissions(get_permissions_for_role(profile.role))
        )

    async def delete_user(self, actor: AccessSnapshot, uid: str) -> None:
        profile = await self._target(actor, uid)
        if profile.is_super_admin:
            raise ProtectedAccountError("Super admin accounts cannot be deleted")
        await self.store.delete_profile(uid)
        if self.identity is not None:
            try:
                await self.identity.delete_account(uid)
            except UnknownAccountError:
                logger.warning(f"No identity account to delete for {uid}")
        logger.info(f"User {uid} deleted by {actor.profile.uid}")
