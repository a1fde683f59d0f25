"""
Shared test fixtures and configuration.
"""

import os

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("RELAY_STORAGE_PATH", "/tmp/arena_test_relay")
for _name in ("ARENA_API_BASE", "MAIN_DOMAIN_API_URL", "LITELLM_API_URL", "MEMORYLAKE_API_URL"):
    os.environ[_name] = ""

from arena.api.deps import get_arena_client, get_dispatcher, get_identity_client, get_message_store  # noqa: E402
from arena.main import app  # noqa: E402
from arena.storage import records  # noqa: E402,F401
from arena.storage.database import Base, create_engine, create_session_factory  # noqa: E402
from arena.storage.sql_store import SqlMessageStore  # noqa: E402


@pytest_asyncio.fixture
async def store():
    """Message store over a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlMessageStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def overrides(store):
    """
    Dependency overrides for the app under test.
    The store is always the in-memory one; tests add dispatcher/client overrides.
    """
    app.dependency_overrides[get_message_store] = lambda: store
    app.dependency_overrides[get_arena_client] = lambda: None
    app.dependency_overrides[get_identity_client] = lambda: None
    yield app.dependency_overrides
    app.dependency_overrides.clear()
    get_dispatcher.cache_clear()


@pytest_asyncio.fixture
async def client(overrides):
    """HTTP client wired to the ASGI app (lifespan is not run)."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://arena.test") as c:
        yield c
