"""
Document store boundary for profiles, organizations and subscriptions

AccessStore is the collaborator the authorization core reads and writes.
SQLModelStore implements it on top of async SQLModel sessions.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Type
import uuid

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel, select

from agencyhub.models.subscription import Subscription
from agencyhub.models.tenant import Organization
from agencyhub.models.user import UserProfile

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Base error raised by store implementations"""


class RecordNotFoundError(StoreError):
    """Raised when updating or deleting a record that does not exist"""

    def __init__(self, collection: str, record_id: Any):
        super().__init__(f"{collection} record not found: {record_id}")
        self.collection = collection
        self.record_id = record_id


class AccessStore(ABC):
    """Persistence operations needed by the authorization core"""

    # Profiles
    @abstractmethod
    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        ...

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> UserProfile:
        ...

    @abstractmethod
    async def update_profile(self, uid: str, **fields: Any) -> UserProfile:
        ...

    @abstractmethod
    async def delete_profile(self, uid: str) -> None:
        ...

    @abstractmethod
    async def list_profiles(self, tenant_id: Optional[uuid.UUID] = None) -> List[UserProfile]:
        ...

    # Organizations
    @abstractmethod
    async def get_organization(self, tenant_id: uuid.UUID) -> Optional[Organization]:
        ...

    @abstractmethod
    async def save_organization(self, organization: Organization) -> Organization:
        ...

    @abstractmethod
    async def update_organization(self, tenant_id: uuid.UUID, **fields: Any) -> Organization:
        ...

    @abstractmethod
    async def delete_organization(self, tenant_id: uuid.UUID) -> None:
        ...

    @abstractmethod
    async def list_organizations(self) -> List[Organization]:
        ...

    # Subscriptions
    @abstractmethod
    async def get_subscription(self, subscription_id: uuid.UUID) -> Optional[Subscription]:
        ...

    @abstractmethod
    async def find_subscriptions(self, tenant_id: uuid.UUID) -> List[Subscription]:
        ...

    @abstractmethod
    async def save_subscription(self, subscription: Subscription) -> Subscription:
        ...

    @abstractmethod
    async def update_subscription(self, subscription_id: uuid.UUID, **fields: Any) -> Subscription:
        ...

    @abstractmethod
    async def delete_subscription(self, subscription_id: uuid.UUID) -> None:
        ...


class SQLModelStore(AccessStore):
    """AccessStore backed by an async SQLModel session factory"""

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def _get(self, model: Type[SQLModel], record_id: Any):
        async with self._session_maker() as session:
            return await session.get(model, record_id)

    async def _save(self, record: SQLModel):
        # Upsert; callers must use the returned instance
        async with self._session_maker() as session:
            merged = await session.merge(record)
            await session.commit()
            await session.refresh(merged)
            return merged

    async def _update(self, model: Type[SQLModel], record_id: Any, fields: dict):
        async with self._session_maker() as session:
            record = await session.get(model, record_id)
            if record is None:
                raise RecordNotFoundError(model.__tablename__, record_id)
            for key, value in fields.items():
                setattr(record, key, value)
            if hasattr(record, "updated_at") and "updated_at" not in fields:
                record.updated_at = datetime.utcnow()
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def _delete(self, model: Type[SQLModel], record_id: Any) -> None:
        async with self._session_maker() as session:
            record = await session.get(model, record_id)
            if record is None:
                raise RecordNotFoundError(model.__tablename__, record_id)
            await session.delete(record)
            await session.commit()
            logger.info(f"Deleted {model.__tablename__} record: {record_id}")

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        return await self._get(UserProfile, uid)

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        return await self._save(profile)

    async def update_profile(self, uid: str, **fields: Any) -> UserProfile:
        return await self._update(UserProfile, uid, fields)

    async def delete_profile(self, uid: str) -> None:
        await self._delete(UserProfile, uid)

    async def list_profiles(self, tenant_id: Optional[uuid.UUID] = None) -> List[UserProfile]:
        statement = select(UserProfile)
        if tenant_id is not None:
            statement = statement.where(UserProfile.tenant_id == tenant_id)
        async with self._session_maker() as session:
            result = await session.exec(statement.order_by(UserProfile.created_at))
            return list(result.all())

    async def get_organization(self, tenant_id: uuid.UUID) -> Optional[Organization]:
        return await self._get(Organization, tenant_id)

    async def save_organization(self, organization: Organization) -> Organization:
        return await self._save(organization)

    async def update_organization(self, tenant_id: uuid.UUID, **fields: Any) -> Organization:
        return await self._update(Organization, tenant_id, fields)

    async def delete_organization(self, tenant_id: uuid.UUID) -> None:
        await self._delete(Organization, tenant_id)

    async def list_organizations(self) -> List[Organization]:
        async with self._session_maker() as session:
            result = await session.exec(select(Organization).order_by(Organization.created_at))
            return list(result.all())

    async def get_subscription(self, subscription_id: uuid.UUID) -> Optional[Subscription]:
        return await self._get(Subscription, subscription_id)

    async def find_subscriptions(self, tenant_id: uuid.UUID) -> List[Subscription]:
        statement = (
            select(Subscription)
            .where(Subscription.tenant_id == tenant_id)
            .order_by(Subscription.created_at.desc())
        )
        async with self._session_maker() as session:
            result = await session.exec(statement)
            return list(result.all())

    async def save_subscription(self, subscription: Subscription) -> Subscription:
        return await self._save(subscription)

    async def update_subscription(self, subscription_id: uuid.UUID, **fields: Any) -> Subscription:
        return await self._update(Subscription, subscription_id, fields)

    async def delete_subscription(self, subscription_id: uuid.UUID) -> None:
        await self._delete(Subscription, subscription_id)
