"""
Access check API endpoint
"""

from fastapi import APIRouter, Depends
from typing import Optional

from agencyhub.core.config import get_settings
from agencyhub.core.dependencies import get_access_snapshot
from agencyhub.core.entitlements import AccessSnapshot
from agencyhub.core.guard import evaluate_access
from agencyhub.core.permissions import Permission
from agencyhub.models.tenant import Module
from agencyhub.schemas.token import AccessDecisionResponse

router = APIRouter()
settings = get_settings()


@router.get("/check", response_model=AccessDecisionResponse)
async def check_access(
    permission: Optional[Permission] = None,
    module: Optional[Module] = None,
    snapshot: AccessSnapshot = Depends(get_access_snapshot),
):
    """Report the guard decision for a permission and/or module without enforcing it"""
    decision = evaluate_access(
        snapshot,
        required_permission=permission,
        required_module=module,
        fallback_path=settings.LOGIN_FALLBACK_PATH,
    )
    return AccessDecisionResponse(
        outcome=decision.outcome.value,
        reason=decision.reason.value if decision.reason else None,
        title=decision.title,
        message=decision.message,
        redirect_to=decision.redirect_to,
    )
