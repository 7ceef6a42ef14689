"""
User authentication API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from agencyhub.core.dependencies import (
    get_access_snapshot,
    get_current_principal,
    get_session_manager,
    identity_error_status,
)
from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.identity import IdentityError, Principal, describe_identity_error
from agencyhub.schemas.organization import OrganizationRegistration
from agencyhub.schemas.token import TokenResponse
from agencyhub.schemas.user import ProfileFields, UserCreate, UserLogin, UserResponse
from agencyhub.services.session_lifecycle import RegistrationError, SessionManager

logger = structlog.get_logger(__name__)
router = APIRouter()


def _identity_exception(error: IdentityError) -> HTTPException:
    return HTTPException(
        status_code=identity_error_status(error),
        detail={"reason": error.reason, "message": describe_identity_error(error)},
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    manager: SessionManager = Depends(get_session_manager),
):
    """Register a new user"""
    try:
        principal, _ = await manager.register(
            user_data.email, user_data.password, ProfileFields(name=user_data.name)
        )
    except IdentityError as e:
        raise _identity_exception(e)

    return TokenResponse(access_token=manager.identity.issue_token(principal), uid=principal.uid)


@router.post("/register-organization", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_organization(
    registration: OrganizationRegistration,
    manager: SessionManager = Depends(get_session_manager),
):
    """Self-register an agency with a trial subscription and its first admin"""
    try:
        result = await manager.register_organization(registration.organization, registration.admin)
    except IdentityError as e:
        raise _identity_exception(e)
    except RegistrationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"reason": "registration_failed", "message": str(e)},
        )

    return TokenResponse(
        access_token=manager.identity.issue_token(result.principal),
        uid=result.principal.uid,
    )


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_data: UserLogin,
    manager: SessionManager = Depends(get_session_manager),
):
    """Login user"""
    try:
        principal = await manager.login(login_data.email, login_data.password)
    except IdentityError as e:
        logger.info(f"Login failed: {e.reason}")
        raise _identity_exception(e)

    return TokenResponse(access_token=manager.identity.issue_token(principal), uid=principal.uid)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_user(
    principal: Principal = Depends(get_current_principal),
    manager: SessionManager = Depends(get_session_manager),
):
    """Logout user"""
    await manager.logout(principal)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    principal: Principal = Depends(get_current_principal),
    snapshot: AccessSnapshot = Depends(get_access_snapshot),
):
    """Get current user profile"""
    if snapshot.profile is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile could not be loaded",
        )
    return snapshot.profile
