"""
Pydantic schemas for organizations and self-registration
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import List, Optional
from datetime import datetime
import uuid

from agencyhub.models.tenant import Module


class OrganizationFields(BaseModel):
    """Agency details collected during self-registration"""
    name: str = Field(..., min_length=1, max_length=200)
    domain: Optional[str] = Field(default=None, max_length=255)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    selected_modules: List[Module] = Field(default_factory=lambda: [Module.LEADS])

    @field_validator("selected_modules")
    @classmethod
    def at_least_one_module(cls, value: List[Module]) -> List[Module]:
        if not value:
            raise ValueError("Select at least one module")
        # Drop duplicates, keep order
        return list(dict.fromkeys(value))


class AdminFields(BaseModel):
    """First administrator of a self-registered organization"""
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)


class OrganizationRegistration(BaseModel):
    organization: OrganizationFields
    admin: AdminFields


class OrganizationCreate(BaseModel):
    """Organization created directly by a super admin"""
    name: str = Field(..., min_length=1, max_length=200)
    domain: Optional[str] = None
    contact_email: EmailStr
    contact_phone: Optional[str] = None
    contact_address: Optional[str] = None
    allowed_modules: List[Module] = Field(default_factory=lambda: [Module.LEADS])
    max_users: int = Field(default=2, ge=-1)
    is_active: bool = True


class ModulesUpdate(BaseModel):
    allowed_modules: List[Module]


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    domain: Optional[str]
    is_active: bool
    allowed_modules: List[str]
    max_users: int
    subscription_id: Optional[uuid.UUID]
    contact_email: str
    contact_phone: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
