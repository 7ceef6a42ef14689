"""
Entitlement evaluation over a loaded access snapshot

AccessSnapshot is the explicit context object handed to the access guard and
to feature code. Every query here is side-effect free.

Module and subscription checks are tri-state: while the tenant or the
subscription is still being resolved the answer is INDETERMINATE, and the
boolean helpers treat that as allowed so screens are not blocked by load
latency. Once resolution finishes, a missing tenant or subscription is
treated as "not set up" and stays permissive.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Union
import uuid

from agencyhub.core.identity import Principal
from agencyhub.core.permissions import Permission, UserRole, has_permission
from agencyhub.models.subscription import Subscription
from agencyhub.models.tenant import Module, Organization
from agencyhub.models.user import UserProfile


class LoaderState(str, Enum):
    """States of the identity and context loader"""
    SIGNED_OUT = "signed_out"
    RESOLVING_PROFILE = "resolving_profile"
    RESOLVING_TENANT = "resolving_tenant"
    RESOLVING_SUBSCRIPTION = "resolving_subscription"
    READY = "ready"
    ERROR = "error"


_TENANT_PENDING = {LoaderState.RESOLVING_PROFILE, LoaderState.RESOLVING_TENANT}
_SUBSCRIPTION_PENDING = _TENANT_PENDING | {LoaderState.RESOLVING_SUBSCRIPTION}


class AccessDecision(str, Enum):
    """Outcome of an entitlement query"""
    PERMITTED = "permitted"
    DENIED = "denied"
    INDETERMINATE = "indeterminate"

    def allows(self) -> bool:
        """Fail-open reading: only an explicit denial refuses"""
        return self is not AccessDecision.DENIED


@dataclass(frozen=True)
class AccessSnapshot:
    """Profile, tenant and subscription as seen by the current session"""
    principal: Optional[Principal] = None
    profile: Optional[UserProfile] = None
    tenant: Optional[Organization] = None
    subscription: Optional[Subscription] = None
    state: LoaderState = LoaderState.SIGNED_OUT
    epoch: int = 0

    def evolve(self, **changes) -> "AccessSnapshot":
        return replace(self, **changes)

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_loading(self) -> bool:
        return self.state in _SUBSCRIPTION_PENDING

    @property
    def is_super_admin(self) -> bool:
        return self.profile is not None and self.profile.role == UserRole.SUPER_ADMIN

    @property
    def is_tenant_bound(self) -> bool:
        return (
            self.profile is not None
            and not self.is_super_admin
            and self.profile.tenant_id is not None
        )

    @property
    def tenant_id(self) -> Optional[uuid.UUID]:
        """Tenant to scope feature queries by"""
        if self.tenant is not None:
            return self.tenant.id
        if self.profile is not None:
            return self.profile.tenant_id
        return None

    def has_permission(self, permission: Union[Permission, str]) -> bool:
        if self.profile is None:
            return False
        if self.is_super_admin:
            return True
        # Stored set is authoritative; role defaults are not consulted here
        return has_permission(permission, self.profile.permissions or [])

    def is_role(self, role: Union[UserRole, str]) -> bool:
        return self.profile is not None and self.profile.role == UserRole(role)

    def can_access_tenant(self, tenant_id: Optional[uuid.UUID]) -> bool:
        """Tenant-bound principals only ever see their own organization"""
        if self.is_super_admin:
            return True
        if self.profile is None or tenant_id is None:
            return False
        return self.profile.tenant_id == tenant_id

    def module_access(self, module: Union[Module, str]) -> AccessDecision:
        if self.is_super_admin:
            return AccessDecision.PERMITTED
        if self.tenant is None:
            if self.state in _TENANT_PENDING:
                return AccessDecision.INDETERMINATE
            return AccessDecision.PERMITTED
        if self.tenant.allows_module(Module(module)):
            return AccessDecision.PERMITTED
        return AccessDecision.DENIED

    def can_access_module(self, module: Union[Module, str]) -> bool:
        return self.module_access(module).allows()

    def subscription_access(self, now: Optional[datetime] = None) -> AccessDecision:
        if self.is_super_admin:
            return AccessDecision.PERMITTED
        if self.subscription is None:
            if self.state in _SUBSCRIPTION_PENDING:
                return AccessDecision.INDETERMINATE
            return AccessDecision.PERMITTED
        if self.subscription.is_usable_at(now or datetime.utcnow()):
            return AccessDecision.PERMITTED
        return AccessDecision.DENIED

    def is_subscription_active(self, now: Optional[datetime] = None) -> bool:
        return self.subscription_access(now).allows()


SIGNED_OUT = AccessSnapshot()
