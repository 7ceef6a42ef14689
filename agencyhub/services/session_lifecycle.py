"""
Session lifecycle: login, self-registration, organization bootstrap, logout

Identity failures propagate to the caller unchanged. Organization bootstrap
spans several independent writes; when one fails the records already created
are removed in reverse order and RegistrationError is raised.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import structlog

from agencyhub.core.events import EventBus, OrganizationRegistered, event_bus
from agencyhub.core.identity import IdentityProvider, Principal
from agencyhub.core.permissions import UserRole, get_permissions_for_role, serialize_permissions
from agencyhub.core.context_loader import ContextLoader
from agencyhub.core.store import AccessStore
from agencyhub.models.subscription import SUBSCRIPTION_PLANS, Subscription, SubscriptionPlan
from agencyhub.models.tenant import Organization
from agencyhub.models.user import UserProfile
from agencyhub.schemas.organization import AdminFields, OrganizationFields
from agencyhub.schemas.user import ProfileFields
from agencyhub.services.subscriptions import new_subscription

logger = structlog.get_logger(__name__)


class RegistrationError(Exception):
    """Organization bootstrap failed part-way and was rolled back"""

    def __init__(self, step: str, message: Optional[str] = None):
        super().__init__(message or f"Organization registration failed while creating the {step}")
        self.step = step


@dataclass
class RegistrationResult:
    principal: Principal
    organization: Organization
    subscription: Subscription
    profile: UserProfile


class SessionManager:
    """Orchestrates identity calls and the profile/tenant records around them"""

    def __init__(
        self,
        identity: IdentityProvider,
        store: AccessStore,
        loader: Optional[ContextLoader] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.identity = identity
        self.store = store
        self.loader = loader
        self.event_bus = bus or event_bus
        self.clock = clock

    async def login(self, email: str, password: str) -> Principal:
        principal = await self.identity.sign_in(email, password)
        try:
            await self.store.update_profile(principal.uid, last_login_at=self.clock())
        except Exception as e:
            logger.warning(f"Could not record last login for {principal.uid}: {e}")
        logger.info(f"User logged in: {principal.uid}")
        return principal

    async def register(
        self,
        email: str,
        password: str,
        profile_fields: Optional[ProfileFields] = None,
    ) -> Tuple[Principal, UserProfile]:
        """Create an account and its profile, then start the session"""
        fields = profile_fields or ProfileFields()
        principal = await self.identity.sign_up(email, password)

        role = fields.role or UserRole.EMPLOYEE
        profile = UserProfile(
            uid=principal.uid,
            email=principal.email,
            name=fields.name,
            role=role,
            tenant_id=fields.tenant_id,
            permissions=serialize_permissions(get_permissions_for_role(role)),
            is_active=True,
            created_by=fields.created_by,
            created_at=self.clock(),
        )
        profile = await self.store.save_profile(profile)
        logger.info(f"User registered: {principal.uid} as {role.value}")

        await self.identity.start_session(principal)
        return principal, profile

    async def register_organization(
        self,
        org_fields: OrganizationFields,
        admin_fields: AdminFields,
    ) -> RegistrationResult:
        """Bootstrap an organization with a trial subscription and its first admin"""
        principal = await self.identity.sign_up(admin_fields.email, admin_fields.password)
        now = self.clock()
        created: List[Tuple[str, object]] = [("account", principal.uid)]
        step = "organization"

        try:
            organization = await self.store.save_organization(Organization(
                name=org_fields.name,
                domain=org_fields.domain,
                contact_email=org_fields.contact_email,
                contact_phone=org_fields.contact_phone,
                contact_address=org_fields.address,
                allowed_modules=[module.value for module in org_fields.selected_modules],
                max_users=SUBSCRIPTION_PLANS[SubscriptionPlan.TRIAL].max_users,
                is_active=True,
                created_by=principal.uid,
                created_at=now,
            ))
            created.append(("organization", organization.id))

            step = "subscription"
            subscription = await self.store.save_subscription(
                new_subscription(organization.id, SubscriptionPlan.TRIAL, now)
            )
            created.append(("subscription", subscription.id))
            organization = await self.store.update_organization(
                organization.id, subscription_id=subscription.id
            )

            step = "profile"
            profile = await self.store.save_profile(UserProfile(
                uid=principal.uid,
                email=principal.email,
                name=admin_fields.name,
                role=UserRole.TENANT_ADMIN,
                tenant_id=organization.id,
                permissions=serialize_permissions(get_permissions_for_role(UserRole.TENANT_ADMIN)),
                is_active=True,
                created_by=principal.uid,
                created_at=now,
            ))
        except Exception as e:
            logger.error(f"Organization registration failed at {step}: {e}", exc_info=True)
            await self._compensate(created)
            raise RegistrationError(step) from e

        logger.info(f"Organization registered: {organization.id} by {principal.uid}")
        await self.event_bus.publish(
            OrganizationRegistered(organization.id, subscription.id, principal.uid)
        )
        await self.identity.start_session(principal)
        return RegistrationResult(principal, organization, subscription, profile)

    async def _compensate(self, created: List[Tuple[str, object]]) -> None:
        removers = {
            "account": self.identity.delete_account,
            "organization": self.store.delete_organization,
            "subscription": self.store.delete_subscription,
        }
        for kind, record_id in reversed(created):
            try:
                await removers[kind](record_id)
                logger.info(f"Rolled back {kind} {record_id}")
            except Exception as e:
                logger.error(f"Could not roll back {kind} {record_id}: {e}")

    async def logout(self, principal: Optional[Principal] = None) -> None:
        await self.identity.sign_out(principal)
        if self.loader is not None:
            self.loader.sign_out()
