"""
Pydantic schemas for user profiles
"""

from pydantic import BaseModel, Field, EmailStr
from typing import List, Optional
from datetime import datetime
import uuid

from agencyhub.core.permissions import Permission, UserRole


class ProfileFields(BaseModel):
    """Caller-supplied profile attributes for self-registration"""
    name: str = Field(default="", max_length=200)
    role: Optional[UserRole] = None
    tenant_id: Optional[uuid.UUID] = None
    created_by: Optional[str] = None


class UserCreate(BaseModel):
    """Public self-registration; role and tenant are not caller-selectable"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    name: str = Field(default="", max_length=200)


class UserLogin(BaseModel):
    """User login schema"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    """User profile response model"""
    uid: str
    email: str
    name: str
    role: UserRole
    tenant_id: Optional[uuid.UUID]
    permissions: List[str]
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime]

    class Config:
        from_attributes = True


class RoleUpdate(BaseModel):
    """Role change request"""
    role: UserRole
    reconcile_permissions: bool = True


class PermissionsUpdate(BaseModel):
    """Explicit permission set for a profile"""
    permissions: List[Permission]


class ActivationUpdate(BaseModel):
    is_active: bool
