"""
Test configuration for pytest
"""

import os

# Test environment variables, set before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DEBUG"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from agencyhub.core.context_loader import ContextLoader
from agencyhub.core.database import init_db
from agencyhub.core.dependencies import get_identity_provider, get_store
from agencyhub.core.events import EventBus
from agencyhub.main import app

from fakes import FakeIdentityProvider, InMemoryStore


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def identity(bus) -> FakeIdentityProvider:
    return FakeIdentityProvider(bus)


@pytest.fixture
def loader(store, bus) -> ContextLoader:
    context_loader = ContextLoader(store)
    context_loader.bind(bus)
    return context_loader


@pytest_asyncio.fixture
async def client(store, identity):
    """HTTP client against the app with in-memory store and identity provider"""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_identity_provider] = lambda: identity
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def session_maker():
    """Async session factory over a fresh in-memory SQLite database"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
