"""
Pytest fixtures for the auth service tests.

Every test gets its own file-backed SQLite database with the standard
roles seeded, so no external server is needed.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pharmacy_auth.config import Settings
from pharmacy_auth.database import Database
from pharmacy_auth.kernel.identity.credential_store import CredentialStore
from pharmacy_auth.kernel.identity.identity_service import IdentityService
from pharmacy_auth.kernel.identity.jwt import TokenCodec
from pharmacy_auth.kernel.identity.password import PasswordHasher
from pharmacy_auth.kernel.identity.seeds import seed_default_roles
from pharmacy_auth.main import create_app

TEST_ACCESS_SECRET = "test-access-secret-for-testing-only"
TEST_REFRESH_SECRET = "test-refresh-secret-for-testing-only"

STRONG_PASSWORD = "Str0ng!Pass"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings for tests: cheap bcrypt, throwaway database."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth_test.db'}",
        jwt_access_secret=TEST_ACCESS_SECRET,
        jwt_refresh_secret=TEST_REFRESH_SECRET,
        bcrypt_rounds=4,
        store_timeout_seconds=5.0,
        max_message_bytes=16 * 1024,
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    """Open database with schema created and roles seeded."""
    db = Database(settings.database_url, timeout_seconds=settings.store_timeout_seconds)
    db.open()
    await db.create_schema()
    await seed_default_roles(db)

    yield db

    await db.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def codec(settings: Settings) -> TokenCodec:
    return TokenCodec.from_settings(settings)


@pytest.fixture
def store(database: Database) -> CredentialStore:
    return CredentialStore(database)


@pytest.fixture
def identity_service(
    store: CredentialStore,
    hasher: PasswordHasher,
    codec: TokenCodec,
) -> IdentityService:
    return IdentityService(store=store, hasher=hasher, codec=codec)


@pytest_asyncio.fixture
async def registered_user(identity_service: IdentityService):
    """A user created through the service with the strong test password."""
    result = await identity_service.create_user(
        first_name="Ana",
        last_name="Lopez",
        email="a@test.com",
        password=STRONG_PASSWORD,
    )
    assert result.success, result
    return result.user


@pytest_asyncio.fixture
async def client(settings: Settings, database: Database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app that shares the test database."""
    app = create_app(settings=settings, database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
