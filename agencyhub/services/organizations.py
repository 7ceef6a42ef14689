"""
Organization administration
"""

from datetime import datetime
from typing import Iterable, List, Optional, Union
import uuid

import structlog

from agencyhub.core.store import AccessStore
from agencyhub.models.tenant import Module, Organization
from agencyhub.schemas.organization import OrganizationCreate

logger = structlog.get_logger(__name__)


def _module_values(modules: Iterable[Union[Module, str]]) -> List[str]:
    return list(dict.fromkeys(Module(m).value for m in modules))


async def create_organization(
    store: AccessStore,
    data: OrganizationCreate,
    created_by: Optional[str] = None,
) -> Organization:
    """Create an organization directly, without an admin account or subscription"""
    organization = await store.save_organization(Organization(
        name=data.name,
        domain=data.domain,
        contact_email=data.contact_email,
        contact_phone=data.contact_phone,
        contact_address=data.contact_address,
        allowed_modules=_module_values(data.allowed_modules),
        max_users=data.max_users,
        is_active=data.is_active,
        created_by=created_by,
        created_at=datetime.utcnow(),
    ))
    logger.info(f"Organization created: {organization.id}")
    return organization


async def set_active(store: AccessStore, tenant_id: uuid.UUID, is_active: bool) -> Organization:
    """Record the organization flag; access checks do not read it"""
    organization = await store.update_organization(tenant_id, is_active=is_active)
    logger.info(f"Organization {tenant_id} {'activated' if is_active else 'deactivated'}")
    return organization


async def update_modules(
    store: AccessStore,
    tenant_id: uuid.UUID,
    modules: Iterable[Union[Module, str]],
) -> Organization:
    organization = await store.update_organization(tenant_id, allowed_modules=_module_values(modules))
    logger.info(f"Organization {tenant_id} modules: {organization.allowed_modules}")
    return organization
