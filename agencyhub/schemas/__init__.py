"""
Schemas module
"""

from agencyhub.schemas.token import AccessDecisionResponse, TokenResponse
from agencyhub.schemas.user import (
    ActivationUpdate,
    PermissionsUpdate,
    ProfileFields,
    RoleUpdate,
    UserCreate,
    UserLogin,
    UserResponse,
)
from agencyhub.schemas.organization import (
    AdminFields,
    ModulesUpdate,
    OrganizationCreate,
    OrganizationFields,
    OrganizationRegistration,
    OrganizationResponse,
)
from agencyhub.schemas.subscription import SubscriptionResponse, SubscriptionStart

__all__ = [
    "AccessDecisionResponse",
    "TokenResponse",
    "ActivationUpdate",
    "PermissionsUpdate",
    "ProfileFields",
    "RoleUpdate",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "AdminFields",
    "ModulesUpdate",
    "OrganizationCreate",
    "OrganizationFields",
    "OrganizationRegistration",
    "OrganizationResponse",
    "SubscriptionResponse",
    "SubscriptionStart",
]
