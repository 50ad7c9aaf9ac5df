"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are cached on first use; point them at test-friendly backends first
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport

# Import after path is set
from adapters.storage import InMemoryEntityStore, SqlEntityStore
from api.dependencies import require_admin
from core.security import MicrosoftIdentity
from infrastructure.config import Settings
from infrastructure.database import create_engine, create_session_maker


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def memory_store() -> InMemoryEntityStore:
    """Fresh in-memory entity store."""
    return InMemoryEntityStore()


@pytest.fixture
async def sql_store() -> AsyncGenerator[SqlEntityStore, None]:
    """SQL entity store on an in-memory SQLite database."""
    settings = Settings(storage_backend="sql", database_url=TEST_DATABASE_URL)
    engine = create_engine(settings)
    store = SqlEntityStore(create_session_maker(engine), engine=engine)
    await store.ensure_ready()

    yield store

    await store.close()


@pytest.fixture
def test_settings() -> Settings:
    """Settings for the application under test."""
    return Settings(
        environment="test",
        storage_backend="memory",
        microsoft_client_id="test-client-id",
        microsoft_tenant_id="test-tenant",
        rate_limit_enabled=True,
    )


@pytest.fixture
def admin_identity() -> MicrosoftIdentity:
    return MicrosoftIdentity(
        subject="admin-oid",
        tenant_id="test-tenant",
        name="Test Admin",
        email="admin@example.com",
    )


@pytest.fixture
async def app(test_settings: Settings, memory_store: InMemoryEntityStore):
    """Application wired to the test store, without admin overrides."""
    from main import create_app

    application = create_app(test_settings)
    application.state.store = memory_store
    validator = application.state.token_validator

    yield application

    application.dependency_overrides.clear()
    await validator.close()


@pytest.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
async def admin_client(app, admin_identity: MicrosoftIdentity) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests pass the admin check."""
    app.dependency_overrides[require_admin] = lambda: admin_identity
    app.state.limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
