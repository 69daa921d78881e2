"""Test configuration and fixtures."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from authgate.auth.manager import GuardManager
from authgate.auth.providers import GenericUser, UserProvider
from authgate.config.settings import settings
from authgate.models.base import Base
from authgate.models.user import User
from authgate.policies.base_policy import BasePolicy
from authgate.policies.gate import Gate
from authgate.schemas.auth import AuthConfig
from authgate.utils.security import Hasher, hash_token


@pytest.fixture(scope="session", autouse=True)
def setup_test_settings():
    """Setup test settings configuration."""
    settings.TESTING = True
    settings.PASSWORD_HASH_SCHEMES = ["pbkdf2_sha256"]
    yield


# Principals and resources used by the gate tests
@dataclass
class Principal:
    id: int
    role: Optional[str] = None
    roles: list[str] = field(default_factory=list)
    permissions: list[str] = field(default_factory=list)


@dataclass
class Post:
    id: int
    user_id: int
    title: str = "Hello"


class PostPolicy(BasePolicy):
    """Policy used across the gate tests."""

    def view_any(self, user, model=None):
        return user is not None

    def view(self, user, post):
        return self._is_owner(user, post)

    def create(self, user, model=None):
        return user.role in ("admin", "editor")

    async def update(self, user, post):
        return self._is_owner(user, post)

    def delete(self, user, post):
        return user.role == "admin"


@pytest.fixture
def author() -> Principal:
    return Principal(id=1, role="editor", roles=["editor"], permissions=["posts.write"])


@pytest.fixture
def admin() -> Principal:
    return Principal(id=99, role="admin", roles=["admin", "moderator"], permissions=["posts.write", "users.manage"])


@pytest.fixture
def post() -> Post:
    return Post(id=10, user_id=1)


@pytest.fixture
def gate(author) -> Gate:
    """Gate resolving the author as current user."""
    return Gate(user_resolver=lambda: author)


class InMemoryUserProvider(UserProvider):
    """User provider over a list of GenericUser records."""

    def __init__(self, hasher: Hasher, users: list[GenericUser]):
        super().__init__(hasher)
        self.users = {str(user.get_auth_identifier()): user for user in users}
        self.lookups = 0
        self.updated_tokens: list[tuple[Any, str]] = []

    async def retrieve_by_id(self, identifier):
        self.lookups += 1
        return self.users.get(str(identifier))

    async def retrieve_by_token(self, identifier, token):
        user = self.users.get(str(identifier))
        if user is None or not self._token_matches(user.get_remember_token(), token):
            return None
        return user

    async def update_remember_token(self, user, token):
        user.set_remember_token(token)
        self.updated_tokens.append((user.get_auth_identifier(), token))

    async def retrieve_by_credentials(self, credentials):
        self.lookups += 1
        conditions = self._lookup_conditions(credentials)
        if not conditions:
            return None
        for user in self.users.values():
            if all(user.get(key) == value for key, value in conditions.items()):
                return user
        return None


# Database backed fixtures for guards and user providers
@pytest.fixture
def hasher() -> Hasher:
    return Hasher(["pbkdf2_sha256"])


@pytest.fixture
def alice(hasher) -> GenericUser:
    return GenericUser(
        {
            "id": 1,
            "email": "alice@example.com",
            "password_hash": hasher.make("secret"),
            "api_token": "alice-token",
            "remember_token": None,
            "role": "editor",
            "roles": ["editor"],
            "permissions": ["posts.write"],
        }
    )


@pytest.fixture
def memory_provider(hasher, alice) -> InMemoryUserProvider:
    return InMemoryUserProvider(hasher, [alice])


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_user_data() -> dict[str, Any]:
    return {
        "email": "alice@example.com",
        "name": "Alice",
        "password": "TestPassword123!",
        "api_token": "alice-token",
        "role": "editor",
        "roles": ["editor"],
        "permissions": ["posts.write"],
    }


@pytest_asyncio.fixture
async def create_test_user(session_factory, hasher, test_user_data) -> User:
    """Create test user in database."""
    user_data = test_user_data.copy()
    password = user_data.pop("password")

    async with session_factory() as db_session:
        user = User(**user_data, password_hash=hasher.make(password), is_active=True)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)

    # Add original password for testing
    user.original_password = password
    return user


@pytest_asyncio.fixture
async def create_hashed_token_user(session_factory, hasher) -> User:
    """User whose API token is stored sha256-hashed."""
    async with session_factory() as db_session:
        user = User(
            email="hashed@example.com",
            password_hash=hasher.make("Secret123!"),
            api_token=hash_token("plain-token"),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
    return user


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(
        default_guard="web",
        guards={
            "web": {"driver": "session", "provider": "users"},
            "api": {"driver": "token", "provider": "users"},
            "hashed": {"driver": "token", "provider": "users", "hash": True},
            "table": {"driver": "token", "provider": "users_table"},
            "broken": {"driver": "carrier-pigeon", "provider": "users"},
            "orphan": {"driver": "session", "provider": "missing"},
            "lonely": {"driver": "session"},
            "odd_provider": {"driver": "token", "provider": "ldap_users"},
        },
        providers={
            "users": {"driver": "model", "model": "authgate.models.user:User"},
            "users_table": {"driver": "database", "table": "users"},
            "ldap_users": {"driver": "ldap"},
        },
    )


@pytest.fixture
def auth_manager(auth_config, hasher, session_factory) -> GuardManager:
    return GuardManager(auth_config, hasher=hasher, session_factory=session_factory)


@pytest_asyncio.fixture
async def async_client_factory():
    """Build async clients for ad-hoc FastAPI apps."""
    clients = []

    def make(app) -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield make

    for client in clients:
        await client.aclose()
