"""Pytest configuration and shared fixtures.

This module provides:
- A file-backed SQLite engine (aiosqlite) for repository tests
- An in-memory verified fake of the UserStore port for service/route tests
- FastAPI test client wired to the fake store without running the lifespan

Architecture follows:
- https://pythonspeed.com/articles/verified-fakes/
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("PERSISTENCE_BACKEND", "sql")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from core.config import Settings, clear_settings_cache
from core.database import Base
from core.wide_event import init_wide_event
from repositories.user_repository import UserRepository
from services.users_service import UserService
from tests.fakes import InMemoryUserStore

# =============================================================================
# Test Settings
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        persistence_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'users.db'}",
    )


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Initialize wide_event context for all tests.

    Services use set_wide_event_fields() which requires context initialization.
    In production this is done by middleware; in tests we do it here.
    """
    init_wide_event()
    yield


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def sqlite_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Engine over a fresh SQLite file with the users table created."""
    # Registers User with Base.metadata
    import models  # noqa: F401

    engine = create_async_engine(test_settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def user_repository(sqlite_engine: AsyncEngine) -> UserRepository:
    return UserRepository(sqlite_engine)


# =============================================================================
# Fake Store and Service Fixtures
# =============================================================================


@pytest.fixture
def fake_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def user_service(fake_store: InMemoryUserStore) -> UserService:
    return UserService(fake_store)


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(
    fake_store: InMemoryUserStore, user_service: UserService
) -> AsyncGenerator[FastAPI]:
    """FastAPI app with the fake store installed on app.state.

    httpx's ASGITransport does not run the lifespan, so the state the
    lifespan would build is set directly.
    """
    # Import here so env vars above are in place before Settings loads
    from main import app as fastapi_app

    fastapi_app.state.user_store = fake_store
    fastapi_app.state.user_service = user_service

    yield fastapi_app

    fastapi_app.state.user_store = None
    fastapi_app.state.user_service = None


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _disable_rate_limiter() -> Generator[None]:
    """Disable slowapi rate limiting so tests can call routes freely."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
