from agencyhub.models.tenant import Organization, Module
from agencyhub.models.user import UserProfile, UserRole
from agencyhub.models.subscription import (
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    PlanDetails,
    SUBSCRIPTION_PLANS,
    UNLIMITED,
)
from agencyhub.models.credential import Credential
