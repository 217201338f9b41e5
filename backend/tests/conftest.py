"""
Pytest fixtures for testing.

Tests run against an in-memory SQLite database by default. Set TEST_POSTGRES=1
to run them against a PostgreSQL container instead (requires Docker).
"""
import os
from collections.abc import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from models.base import Base

SQLITE_URL = "sqlite+aiosqlite:///:memory:"
USE_POSTGRES = os.environ.get("TEST_POSTGRES", "").lower() in {"1", "true", "yes"}


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Get the test database URL and set it in environment.

    This must be set before any app imports that trigger Settings validation.
    """
    if not USE_POSTGRES:
        os.environ["DATABASE_URL"] = SQLITE_URL
        yield SQLITE_URL
        return

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        url = postgres.get_connection_url()
        os.environ["DATABASE_URL"] = url
        yield url


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """
    Create an async engine for testing.

    For SQLite every test gets a brand-new in-memory database; StaticPool keeps
    the single connection (and therefore the data) alive for the whole test.
    """
    if _is_sqlite(database_url):
        engine = create_async_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """
    Create an async session for a single test.

    On PostgreSQL the session joins an outer transaction that is rolled back
    after the test (savepoints let flush/commit work inside it). SQLite needs
    no rollback because the database itself is discarded.
    """
    if _is_sqlite(str(async_engine.url)):
        session_factory = async_sessionmaker(
            async_engine, class_=AsyncSession, expire_on_commit=False,
        )
        async with session_factory() as session:
            yield session
        return

    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            session_factory = async_sessionmaker(
                bind=connection,
                class_=AsyncSession,
                expire_on_commit=False,
                join_transaction_mode="create_savepoint",
            )
            async with session_factory() as session:
                yield session
        finally:
            await transaction.rollback()


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session override."""
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
