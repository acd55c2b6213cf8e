import os

# Settings are read at import time, so these must be set before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date
from typing import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.enums import UserRole
from app.db.session import Base, create_tables, get_db
from app.main import app
from app.placement.engine import PlacementEngine
from app.placement.entities import Actor, Opportunity, Sponsor, Student


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TODAY = date(2025, 3, 15)

STAFF = Actor("staff-1", UserRole.STAFF)


def student(user_id: str) -> Actor:
    return Actor(user_id, UserRole.STUDENT)


def sponsor(user_id: str) -> Actor:
    return Actor(user_id, UserRole.SPONSOR)


def seed_directory(engine: PlacementEngine) -> None:
    """S1 year 3 CS, S2 year 1 CS, S3 year 2 Math; approved sponsors SP1 Acme and SP2 Globex."""
    engine.directory.register_student(STAFF, Student("S1", "Asha", 3, "CS"))
    engine.directory.register_student(STAFF, Student("S2", "Ben", 1, "CS"))
    engine.directory.register_student(STAFF, Student("S3", "Chen", 2, "Math"))
    for sponsor_id, company in (("SP1", "Acme"), ("SP2", "Globex")):
        engine.directory.register_sponsor(sponsor(sponsor_id), Sponsor(sponsor_id, f"{company} HR", company))
        engine.directory.approve_sponsor(STAFF, sponsor_id)


@pytest.fixture()
def placement() -> PlacementEngine:
    """Seeded engine with a fixed clock and an empty change log."""
    engine = PlacementEngine(today=lambda: TODAY)
    seed_directory(engine)
    engine.drain_changes()
    return engine


@pytest.fixture()
def post_opportunity(placement: PlacementEngine) -> Callable[..., Opportunity]:
    """Create a posting (approved by staff unless approve=False) open around TODAY."""

    def _post(sponsor_id: str = "SP1", approve: bool = True, **overrides) -> Opportunity:
        fields = dict(
            title="Backend Intern",
            description="Python services",
            level="Basic",
            target_subject="CS",
            opening_date=date(2025, 3, 1),
            closing_date=date(2025, 4, 30),
            slots=1,
        )
        fields.update(overrides)
        opp = placement.opportunities.create(sponsor(sponsor_id), **fields)
        if approve:
            opp = placement.opportunities.approve(STAFF, opp.id)
        return opp

    return _post


@pytest.fixture()
async def db_engine():
    """One in-memory SQLite database shared by every session of a test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with a fresh engine and database. The lifespan is not run."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.placement = PlacementEngine(today=lambda: TODAY)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.placement = None
