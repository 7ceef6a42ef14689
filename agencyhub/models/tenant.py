"""
Organization model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid


class Module(str, Enum):
    """Optional feature areas an organization can be entitled to"""
    LEADS = "leads"
    INVOICES = "invoices"


class Organization(SQLModel, table=True):
    """Organization (tenant) owning leads, invoices and users"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    domain: Optional[str] = Field(default=None, index=True)
    logo_url: Optional[str] = None

    # Gate independent of subscription state
    is_active: bool = Field(default=True, index=True)

    # Settings
    allowed_modules: List[str] = Field(
        default_factory=lambda: [Module.LEADS.value],
        sa_column=Column(JSON),
        description="Entitled modules: leads, invoices",
    )
    max_users: int = Field(default=2, description="Seat cap (advisory)")
    custom_branding: bool = Field(default=False)

    # Active subscription back-reference
    subscription_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Contact info, used for billing correspondence
    contact_email: str = Field(index=True)
    contact_phone: Optional[str] = None
    contact_address: Optional[str] = None

    # Audit
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def allows_module(self, module: "Module | str") -> bool:
        """Check whether the module is in the organization's entitlement list"""
        value = module.value if isinstance(module, Module) else str(module)
        return value in (self.allowed_modules or [])
