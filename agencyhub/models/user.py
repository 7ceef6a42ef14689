"""
User profile model with roles and tenant scoping
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import List, Optional
import uuid

from agencyhub.core.permissions import UserRole


class UserProfile(SQLModel, table=True):
    """Stored profile for an identity-provider account"""

    __tablename__ = "user_profiles"

    # Identity-provider account ID (1:1)
    uid: str = Field(primary_key=True, max_length=128)
    email: str = Field(index=True, nullable=False, max_length=255)
    name: str = Field(default="", max_length=200)

    # RBAC
    role: UserRole = Field(default=UserRole.EMPLOYEE, nullable=False, index=True)
    tenant_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation; empty for super admins",
    )
    # Snapshot of the role defaults taken when the profile was minted
    permissions: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Status
    is_active: bool = Field(default=True, index=True)

    # Audit
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN
