"""
Authentication and access dependencies for FastAPI
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Union
import structlog

from agencyhub.core.config import get_settings
from agencyhub.core.context_loader import ContextLoader
from agencyhub.core.database import async_session_maker
from agencyhub.core.entitlements import SIGNED_OUT, AccessSnapshot
from agencyhub.core.guard import GuardDecision, GuardOutcome, evaluate_access
from agencyhub.core.identity import (
    AccountDisabledError,
    AccountExistsError,
    IdentityError,
    IdentityNetworkError,
    IdentityProvider,
    LocalIdentityProvider,
    Principal,
    RateLimitedError,
    WeakPasswordError,
    describe_identity_error,
)
from agencyhub.core.permissions import Permission
from agencyhub.core.store import AccessStore, SQLModelStore
from agencyhub.models.tenant import Module
from agencyhub.services.session_lifecycle import SessionManager

logger = structlog.get_logger(__name__)
settings = get_settings()
security = HTTPBearer(auto_error=False)

IDENTITY_ERROR_STATUS = {
    AccountDisabledError: status.HTTP_403_FORBIDDEN,
    AccountExistsError: status.HTTP_409_CONFLICT,
    RateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
    IdentityNetworkError: status.HTTP_503_SERVICE_UNAVAILABLE,
    WeakPasswordError: status.HTTP_400_BAD_REQUEST,
}


def get_store() -> AccessStore:
    return SQLModelStore(async_session_maker)


def get_identity_provider() -> IdentityProvider:
    return LocalIdentityProvider(async_session_maker)


def get_session_manager(
    identity: IdentityProvider = Depends(get_identity_provider),
    store: AccessStore = Depends(get_store),
) -> SessionManager:
    return SessionManager(identity, store)


def identity_error_status(error: IdentityError) -> int:
    """HTTP status for an identity failure; credential failures are 401"""
    for error_type, code in IDENTITY_ERROR_STATUS.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_401_UNAUTHORIZED


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Principal]:
    if credentials is None:
        return None
    principal = identity.principal_from_token(credentials.credentials)
    if principal is None:
        return None
    # A valid token is not enough; the account must still exist and be enabled
    try:
        return await identity.get_principal(principal.uid)
    except IdentityError as e:
        logger.info(f"Rejected token for {principal.uid}: {e.reason}")
        raise HTTPException(
            status_code=identity_error_status(e),
            detail={"reason": e.reason, "message": describe_identity_error(e)},
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Get the signed-in principal from the bearer token"""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.debug(f"User authenticated: {principal.uid}")
    return principal


async def get_access_snapshot(
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: AccessStore = Depends(get_store),
) -> AccessSnapshot:
    """Resolve profile, organization and subscription for this request"""
    if principal is None:
        return SIGNED_OUT
    return await ContextLoader(store).sign_in(principal)


def raise_for_decision(decision: GuardDecision) -> None:
    """Translate a non-allow guard decision into an HTTP error"""
    if decision.outcome == GuardOutcome.ALLOW:
        return
    if decision.outcome == GuardOutcome.REDIRECT:
        raise HTTPException(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            detail="Redirect",
            headers={"Location": decision.redirect_to},
        )
    if decision.outcome == GuardOutcome.LOADING:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access context is still loading",
            headers={"Retry-After": "1"},
        )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "reason": decision.reason.value,
            "title": decision.title,
            "message": decision.message,
        },
    )


def require_access(
    permission: Optional[Union[Permission, str]] = None,
    module: Optional[Union[Module, str]] = None,
):
    """Dependency factory guarding a route by permission and/or module"""

    async def guard(snapshot: AccessSnapshot = Depends(get_access_snapshot)) -> AccessSnapshot:
        decision = evaluate_access(
            snapshot,
            required_permission=permission,
            required_module=module,
            fallback_path=settings.LOGIN_FALLBACK_PATH,
        )
        raise_for_decision(decision)
        return snapshot

    return guard
