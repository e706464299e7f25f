"""Integration test fixtures for database-backed core operations.

Every test gets a fresh in-memory SQLite database with the full schema.
Uses polyfactory for type-safe test data generation.
"""

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import src.taskcore.models  # noqa: F401 - registers tables on the metadata
from src.taskcore.core.db import create_session_factory
from src.taskcore.core.events import EventBus
from src.taskcore.models import Organization, Profile, Project
from src.taskcore.services import CoreServices
from tests.helpers import create_profile, create_workspace


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory database shared by every connection of one test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide a session configured like the production session factory.

    Core operations commit through ``transaction()``; tests never commit.
    """
    async with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def services(db_session: AsyncSession, events: EventBus) -> CoreServices:
    return CoreServices(db_session, events)


@pytest.fixture
async def owner(services: CoreServices) -> Profile:
    return await create_profile(services, "Olivia Owner")


@pytest.fixture
async def workspace(services: CoreServices, owner: Profile) -> tuple[Organization, Project]:
    """Organization and project owned by ``owner`` with the default stages."""
    return await create_workspace(services, owner.id)


@pytest.fixture
def organization(workspace: tuple[Organization, Project]) -> Organization:
    return workspace[0]


@pytest.fixture
def project(workspace: tuple[Organization, Project]) -> Project:
    return workspace[1]
