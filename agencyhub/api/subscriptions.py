"""
Subscription API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from datetime import datetime
import structlog
import uuid

from agencyhub.core.dependencies import get_store, require_access
from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.permissions import Permission
from agencyhub.core.store import AccessStore, RecordNotFoundError
from agencyhub.models.subscription import Subscription, SubscriptionPlan
from agencyhub.schemas.subscription import SubscriptionResponse, SubscriptionStart
from agencyhub.services import subscriptions

logger = structlog.get_logger(__name__)
router = APIRouter()


def _response(subscription: Subscription) -> SubscriptionResponse:
    now = datetime.utcnow()
    response = SubscriptionResponse.model_validate(subscription)
    response.is_usable = subscription.is_usable_at(now)
    response.days_until_expiry = subscriptions.days_until_expiry(subscription, now)
    return response


@router.get("/current", response_model=SubscriptionResponse)
async def get_current_subscription(snapshot: AccessSnapshot = Depends(require_access())):
    """Get the subscription of the signed-in user's organization"""
    if snapshot.subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No subscription found"
        )
    return _response(snapshot.subscription)


@router.post("/", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def start_subscription(
    data: SubscriptionStart,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_TENANT_SETTINGS)),
    store: AccessStore = Depends(get_store),
):
    """Start a plan for an organization

    Tenant admins may only request a trial for their own organization.
    Paid plans are recorded by payment managers against a payment reference.
    """
    if data.plan != SubscriptionPlan.TRIAL and not snapshot.has_permission(Permission.MANAGE_PAYMENTS):
        logger.warning(f"Paid plan {data.plan.value} refused for {snapshot.profile.uid}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Paid plans are activated once payment is confirmed"
        )

    tenant_id = data.tenant_id if snapshot.is_super_admin and data.tenant_id else snapshot.tenant_id
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No organization to subscribe"
        )
    try:
        subscription = await subscriptions.start_plan(
            store, tenant_id, data.plan, payment_reference=data.payment_reference
        )
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )
    except subscriptions.PaymentRequiredError as e:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=str(e)
        )
    except subscriptions.TrialUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    return _response(subscription)


@router.post("/{subscription_id}/suspend", response_model=SubscriptionResponse)
async def suspend_subscription(
    subscription_id: uuid.UUID,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_SUBSCRIPTIONS)),
    store: AccessStore = Depends(get_store),
):
    """Suspend a subscription"""
    try:
        return _response(await subscriptions.suspend(store, subscription_id))
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: uuid.UUID,
    snapshot: AccessSnapshot = Depends(require_access(Permission.MANAGE_SUBSCRIPTIONS)),
    store: AccessStore = Depends(get_store),
):
    """Cancel a subscription"""
    try:
        return _response(await subscriptions.cancel(store, subscription_id))
    except RecordNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )
