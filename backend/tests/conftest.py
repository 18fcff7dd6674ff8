"""
Pytest fixtures for the test database, client, users and a seeded show.

Each test gets its own SQLite database file (aiosqlite) so tests are isolated
and need no running PostgreSQL or Redis.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("HOLD_SWEEP_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.db.base import Base
from app.db.session import Database, get_database
from app.main import app
from app.models.show import Show
from app.models.user import User
from app.services.seat_map import initialize_seat_map
from tests.utils import FrozenClock, auth_headers_for, create_user


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh schema in a throwaway SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}")
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database."""
    app.dependency_overrides[get_database] = lambda: database

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(database: Database) -> User:
    return await create_user(database, "testuser")


@pytest_asyncio.fixture
async def other_user(database: Database) -> User:
    return await create_user(database, "otheruser")


@pytest_asyncio.fixture
async def admin_user(database: Database) -> User:
    return await create_user(database, "adminuser", is_admin=True)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    return auth_headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return auth_headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest_asyncio.fixture
async def test_show(database: Database) -> Show:
    """A show priced 250.00 with the standard 10x10 seat map, all available."""
    async with database.transaction() as session:
        show = Show(
            movie_title="Inception",
            screen_name="Screen 1",
            start_time=datetime.now(timezone.utc) + timedelta(days=1),
            price=Decimal("250.00"),
        )
        session.add(show)
        await session.flush()
        await initialize_seat_map(session, show.id, "ABCDEFGHIJ", 10)
        await session.refresh(show)
    return show


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()
