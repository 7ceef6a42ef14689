"""
Identity and context loader

Resolves a signed-in principal to its profile, then its organization, then
the organization's subscription, publishing an AccessSnapshot after every
transition. The chain is strictly sequential and each step awaits the one
before it.

Fetch failures never propagate: the missing resource is treated as absent
and the loader settles in the ERROR state. Every sign-in, sign-out and
refresh starts a new session epoch; a step that completes for an older
epoch is discarded.
"""

from typing import Callable, List, Optional

import structlog

from agencyhub.core.entitlements import SIGNED_OUT, AccessSnapshot, LoaderState
from agencyhub.core.events import EventBus, SessionEnded, SessionStarted
from agencyhub.core.identity import Principal
from agencyhub.core.permissions import UserRole, get_permissions_for_role, serialize_permissions
from agencyhub.core.store import AccessStore
from agencyhub.models.subscription import Subscription
from agencyhub.models.tenant import Organization
from agencyhub.models.user import UserProfile

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[AccessSnapshot], None]


class _StaleEpoch(Exception):
    """Raised internally when a newer session has superseded this resolution"""


def default_profile(principal: Principal) -> UserProfile:
    """Least-privilege profile minted for a principal with no stored profile"""
    return UserProfile(
        uid=principal.uid,
        email=principal.email,
        name="",
        role=UserRole.EMPLOYEE,
        permissions=serialize_permissions(get_permissions_for_role(UserRole.EMPLOYEE)),
        is_active=True,
    )


class ContextLoader:
    """Single writer of the access snapshot"""

    def __init__(self, store: AccessStore):
        self.store = store
        self._snapshot: AccessSnapshot = SIGNED_OUT
        self._epoch = 0
        self._listeners: List[SnapshotListener] = []
        self.last_error: Optional[Exception] = None

    @property
    def snapshot(self) -> AccessSnapshot:
        return self._snapshot

    @property
    def state(self) -> LoaderState:
        return self._snapshot.state

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        self._listeners.remove(listener)

    def bind(self, bus: EventBus) -> None:
        """React to identity session events published on the bus"""
        bus.subscribe(SessionStarted.__name__, self._on_session_started)
        bus.subscribe(SessionEnded.__name__, self._on_session_ended)

    async def _on_session_started(self, event: SessionStarted) -> None:
        await self.sign_in(event.principal)

    async def _on_session_ended(self, event: SessionEnded) -> None:
        self.sign_out()

    def _publish(self, epoch: int, **changes) -> AccessSnapshot:
        if epoch != self._epoch:
            raise _StaleEpoch()
        self._snapshot = self._snapshot.evolve(epoch=epoch, **changes)
        logger.debug(f"Context state: {self._snapshot.state.value}")
        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot

    async def sign_in(self, principal: Principal) -> AccessSnapshot:
        """Start a session for the principal and resolve its context"""
        self._epoch += 1
        epoch = self._epoch
        self._snapshot = AccessSnapshot(principal=principal, epoch=epoch, state=LoaderState.RESOLVING_PROFILE)
        self.last_error = None
        try:
            await self._resolve(principal, epoch)
        except _StaleEpoch:
            logger.debug(f"Discarded stale resolution for {principal.uid} (epoch {epoch})")
        return self._snapshot

    def sign_out(self) -> AccessSnapshot:
        """Clear the snapshot; in-flight resolutions become stale"""
        self._epoch += 1
        self.last_error = None
        self._snapshot = AccessSnapshot(epoch=self._epoch)
        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot

    async def refresh(self) -> AccessSnapshot:
        """Re-run the chain for the signed-in principal"""
        principal = self._snapshot.principal
        if principal is None:
            return self._snapshot
        return await self.sign_in(principal)

    async def _resolve(self, principal: Principal, epoch: int) -> None:
        self._publish(epoch, state=LoaderState.RESOLVING_PROFILE)
        try:
            profile = await self._load_profile(principal)
        except _StaleEpoch:
            raise
        except Exception as e:
            self._check(epoch)
            self._fail(epoch, "profile", e)
            return
        self._check(epoch)

        if profile.role == UserRole.SUPER_ADMIN or profile.tenant_id is None:
            self._publish(epoch, profile=profile, tenant=None, subscription=None, state=LoaderState.READY)
            return

        self._publish(epoch, profile=profile, state=LoaderState.RESOLVING_TENANT)
        try:
            tenant = await self.store.get_organization(profile.tenant_id)
        except Exception as e:
            self._check(epoch)
            self._fail(epoch, "tenant", e)
            return
        self._check(epoch)

        if tenant is None:
            logger.warning(f"Organization {profile.tenant_id} not found for {principal.uid}")
            self._publish(epoch, tenant=None, subscription=None, state=LoaderState.READY)
            return

        self._publish(epoch, tenant=tenant, state=LoaderState.RESOLVING_SUBSCRIPTION)
        try:
            subscription = await self._load_subscription(tenant, epoch)
        except _StaleEpoch:
            raise
        except Exception as e:
            self._check(epoch)
            self._fail(epoch, "subscription", e)
            return
        self._check(epoch)

        self._publish(epoch, subscription=subscription, state=LoaderState.READY)

    def _check(self, epoch: int) -> None:
        if epoch != self._epoch:
            raise _StaleEpoch()

    def _fail(self, epoch: int, step: str, error: Exception) -> None:
        logger.error(f"Failed to resolve {step}: {error}", exc_info=True)
        self.last_error = error
        changes = {"state": LoaderState.ERROR, "subscription": None}
        if step in ("profile", "tenant"):
            changes["tenant"] = None
        self._publish(epoch, **changes)

    async def _load_profile(self, principal: Principal) -> UserProfile:
        profile = await self.store.get_profile(principal.uid)
        if profile is not None:
            return profile

        profile = default_profile(principal)
        logger.info(f"No profile for {principal.uid}, creating default")
        try:
            profile = await self.store.save_profile(profile)
        except Exception as e:
            # Keep the in-memory default so the session still has a profile
            logger.warning(f"Could not persist default profile for {principal.uid}: {e}")
        return profile

    async def _load_subscription(self, tenant: Organization, epoch: int) -> Optional[Subscription]:
        if tenant.subscription_id is not None:
            subscription = await self.store.get_subscription(tenant.subscription_id)
            if subscription is not None:
                return subscription
            logger.warning(f"Subscription {tenant.subscription_id} missing, querying by tenant")
            self._check(epoch)

        subscriptions = await self.store.find_subscriptions(tenant.id)
        return subscriptions[0] if subscriptions else None
