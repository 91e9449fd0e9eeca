"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from haskify.config import Settings
from haskify.db.models import Base
from haskify.main import create_app
from haskify.services import Services, build_services

SESSION_ID = "session-test-1"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, admin_token="admin-secret")  # type: ignore[call-arg]


@pytest.fixture
def services(settings: Settings) -> Services:
    """In-memory services with the stub chat client and hashing embedder."""
    return build_services(settings)


@pytest.fixture
def client(services: Services) -> Iterator[TestClient]:
    """Test client over an app wired to ``services`` (lifespan runs)."""
    app = create_app(services, start_sweeper=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_headers() -> dict[str, str]:
    return {"X-Session-Id": SESSION_ID}


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'haskify-test.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires POSTGRES_TEST_URL to point at a real PostgreSQL database.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("POSTGRES_TEST_URL")
    if not database_url:
        pytest.skip("POSTGRES_TEST_URL not set - skipping postgres test")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
