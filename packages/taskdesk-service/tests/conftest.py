"""Service test fixtures: temp SQLite databases, a shared codec, HTTP clients."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskdesk_service.auth.jwt import TokenCodec
from taskdesk_service.auth.keys import SigningKeys
from taskdesk_service.auth.service import AuthService
from taskdesk_service.db.engine import close_db, create_schema, get_session_factory, init_db
from taskdesk_service.db.models import AccountModel
from taskdesk_service.db.seed import seed_reference_data
from taskdesk_service.rest.app import create_app
from taskdesk_service.settings import settings

PASSWORD = "Aa1!aaaa"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    """Point the app at a throwaway SQLite file and make bcrypt cheap."""
    monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setattr(settings, "db_create_all", True)
    monkeypatch.setattr(settings, "refresh_token_sweep_enabled", False)
    # TestClient talks plain http; a Secure cookie would never be sent back.
    monkeypatch.setattr(settings, "refresh_cookie_secure", False)
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "log_format", "console")
    return settings


# ---------------------------------------------------------------------------
# Store / service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def signing_keys() -> SigningKeys:
    return SigningKeys.generate()


@pytest.fixture
def codec(signing_keys) -> TokenCodec:
    return TokenCodec(signing_keys, issuer="tasks-management", ttl=timedelta(minutes=15))


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await create_schema()
    factory = get_session_factory()
    async with factory() as session:
        await seed_reference_data(session)
    yield factory
    await close_db()


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as s:
        yield s


@pytest.fixture
def auth_service(session, codec) -> AuthService:
    return AuthService(session, codec)


@pytest_asyncio.fixture
async def account(auth_service) -> AccountModel:
    return await auth_service.register("alice", "alice@example.com", PASSWORD, PASSWORD)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Full app with lifespan: schema is created and reference data seeded."""
    with TestClient(create_app()) as tc:
        yield tc


@pytest.fixture
def login(client) -> Callable[..., dict[str, str]]:
    """Sign up and sign in; returns bearer headers. The refresh cookie stays on the client."""

    def _login(username: str = "user1", email: str = "u1@x.com", password: str = PASSWORD):
        resp = client.post(
            "/auth/signup",
            json={
                "username": username,
                "email": email,
                "password": password,
                "confirmPassword": password,
            },
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/auth/signin", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['accessToken']}"}

    return _login
