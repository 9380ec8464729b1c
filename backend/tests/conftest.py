"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh schema on an in-memory SQLite database (override
with TEST_DATABASE_URL to run against Postgres). The app's get_db
dependency is pointed at the test session.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_REGISTRATION_CODE", "let-me-in")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from eventhub.main import app
from eventhub.db.base import Base
from eventhub.db.session import build_engine, get_db
from eventhub.core.security import create_access_token, hash_password
from eventhub.models.user import User
from eventhub.models.event import Event

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = build_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        test_engine = build_engine(TEST_DATABASE_URL)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def sessions(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory whose sessions hold separate connections, so two
    admissions can be interleaved. SQLite runs on a file for this.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        url = f"sqlite+aiosqlite:///{tmp_path / 'interleaving.db'}"
    else:
        url = TEST_DATABASE_URL
    shared_engine = build_engine(url)

    async with shared_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(shared_engine, class_=AsyncSession, expire_on_commit=False)

    async with shared_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await shared_engine.dispose()


def _override_db(db_session: AsyncSession):
    async def override_get_db():
        yield db_session
        await db_session.commit()

    return override_get_db


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""
    app.dependency_overrides[get_db] = _override_db(db_session)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def raw_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Like `client`, but unhandled server errors come back as 500 responses."""
    app.dependency_overrides[get_db] = _override_db(db_session)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session: AsyncSession, name: str, email: str, role: str = "user") -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Test User", "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Other User", "other@example.com")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Admin User", "admin@example.com", role="admin")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


@pytest.fixture
def make_event(db_session: AsyncSession, admin_user: User):
    """Factory for events created directly in the database."""

    async def _make_event(
        title: str = "Test Concert",
        category: str = "music",
        location: str = "Berlin",
        days_ahead: int = 30,
        max_attendees: int = 100,
        description: str = "A test event",
        created_by: int | None = None,
    ) -> Event:
        start = datetime.now(timezone.utc) + timedelta(days=days_ahead)
        event = Event(
            title=title,
            description=description,
            date=start,
            end_date=start + timedelta(hours=2),
            category=category,
            location=location,
            max_attendees=max_attendees,
            created_by=created_by or admin_user.id,
        )
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make_event


@pytest_asyncio.fixture
async def test_event(make_event) -> Event:
    """An event with 100 places."""
    return await make_event()


@pytest_asyncio.fixture
async def tiny_event(make_event) -> Event:
    """An event with a single place."""
    return await make_event(title="Chamber Recital", max_attendees=1)
