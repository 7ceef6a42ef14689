"""
Access guard for protected routes and actions

Structural and billing denials (inactive account, expired or suspended
subscription, module not entitled) block in place with an explanation.
A missing permission redirects to a fallback path instead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import structlog

from agencyhub.core.entitlements import AccessDecision, AccessSnapshot
from agencyhub.core.permissions import Permission
from agencyhub.models.subscription import SubscriptionStatus
from agencyhub.models.tenant import Module

logger = structlog.get_logger(__name__)

LOGIN_PATH = "/login"


class GuardOutcome(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    LOADING = "loading"
    BLOCK = "block"


class BlockReason(str, Enum):
    ACCOUNT_INACTIVE = "account_inactive"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    ACCOUNT_SUSPENDED = "account_suspended"
    MODULE_NOT_AVAILABLE = "module_not_available"


BLOCK_TITLES = {
    BlockReason.ACCOUNT_INACTIVE: "Account Inactive",
    BlockReason.SUBSCRIPTION_EXPIRED: "Subscription Expired",
    BlockReason.ACCOUNT_SUSPENDED: "Account Suspended",
    BlockReason.MODULE_NOT_AVAILABLE: "Module Not Available",
}


@dataclass(frozen=True)
class GuardDecision:
    """What to render for a protected route"""
    outcome: GuardOutcome
    reason: Optional[BlockReason] = None
    redirect_to: Optional[str] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GuardOutcome.ALLOW

    @property
    def title(self) -> Optional[str]:
        return BLOCK_TITLES.get(self.reason) if self.reason else None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(GuardOutcome.ALLOW)

    @classmethod
    def loading(cls) -> "GuardDecision":
        return cls(GuardOutcome.LOADING)

    @classmethod
    def redirect(cls, path: str) -> "GuardDecision":
        return cls(GuardOutcome.REDIRECT, redirect_to=path)

    @classmethod
    def block(cls, reason: BlockReason, message: str) -> "GuardDecision":
        return cls(GuardOutcome.BLOCK, reason=reason, message=message)


def evaluate_access(
    snapshot: AccessSnapshot,
    required_permission: Optional[Union[Permission, str]] = None,
    required_module: Optional[Union[Module, str]] = None,
    fallback_path: str = LOGIN_PATH,
) -> GuardDecision:
    """Decide access for the snapshot. The first matching rule wins."""
    if not snapshot.is_authenticated:
        return GuardDecision.redirect(LOGIN_PATH)

    profile = snapshot.profile
    if profile is None:
        return GuardDecision.loading()

    if not profile.is_active:
        logger.info(f"Access blocked, inactive account: {profile.uid}")
        return GuardDecision.block(
            BlockReason.ACCOUNT_INACTIVE,
            "Your account has been deactivated. Please contact your administrator.",
        )

    subscription = snapshot.subscription
    if profile.tenant_id and subscription is not None:
        if subscription.status == SubscriptionStatus.EXPIRED:
            logger.info(f"Access blocked, subscription expired: {subscription.id}")
            return GuardDecision.block(
                BlockReason.SUBSCRIPTION_EXPIRED,
                "Your subscription has expired. Please contact your administrator to renew.",
            )
        if subscription.status == SubscriptionStatus.SUSPENDED:
            logger.info(f"Access blocked, subscription suspended: {subscription.id}")
            return GuardDecision.block(
                BlockReason.ACCOUNT_SUSPENDED,
                "Your account has been suspended. Please contact support.",
            )

    if required_module is not None:
        module = Module(required_module)
        access = snapshot.module_access(module)
        if access == AccessDecision.INDETERMINATE:
            return GuardDecision.loading()
        if access == AccessDecision.DENIED:
            logger.info(f"Access blocked, module {module.value} not entitled: {profile.uid}")
            return GuardDecision.block(
                BlockReason.MODULE_NOT_AVAILABLE,
                f"The {module.value} module is not available in your current plan. "
                "Please upgrade your subscription.",
            )

    if required_permission is not None and not snapshot.has_permission(required_permission):
        logger.info(f"Redirecting, missing permission {Permission(required_permission).value}: {profile.uid}")
        return GuardDecision.redirect(fallback_path)

    return GuardDecision.allow()
