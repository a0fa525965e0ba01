# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import uuid

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from storefront.core.config import Settings, get_settings
from storefront.main import create_app
from storefront.services.identity import AnonymousSession, AuthenticatedUser

TEST_SECRET = "test-secret-key-0123456789abcdef"


# ---------- Fixtures ----------
@pytest.fixture(scope="function")
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file per test."""
    return get_settings(
        SECRET_KEY=TEST_SECRET,
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        ASYNC_DATABASE_URL=None,
        SEED_CATALOG=False,
        METRICS_ENABLED=True,
        LOG_LEVEL="WARNING",
    )


@pytest_asyncio.fixture(scope="function")
async def app(settings: Settings) -> FastAPI:
    """App with a fresh schema; ASGITransport does not run the lifespan."""
    application = create_app(settings)
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="function")
def database(app: FastAPI):
    return app.state.database


@pytest.fixture(scope="function")
def carts(app: FastAPI):
    return app.state.carts


@pytest.fixture(scope="function")
def orders(app: FastAPI):
    return app.state.orders


@pytest.fixture(scope="function")
def catalog(app: FastAPI):
    return app.state.catalog


@pytest_asyncio.fixture(scope="function")
async def seeded_items(catalog) -> int:
    """Demo catalog: 1 Laptop, 2 Smartphone, 3 Headphones, 4 Keyboard, 5 Mouse."""
    return await catalog.seed_demo_items()


# --- Users and tokens ---

@pytest_asyncio.fixture(scope="function")
async def normal_user(app: FastAPI):
    return await app.state.users.signup(f"user-{uuid.uuid4().hex[:8]}", "User1234")


@pytest_asyncio.fixture(scope="function")
async def user_token(client: httpx.AsyncClient, normal_user) -> str:
    """Bearer token for the normal user, obtained through the login endpoint."""
    resp = await client.post(
        "/api/users/login",
        json={"username": normal_user.username, "password": "User1234"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture(scope="function")
def auth_headers(user_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture(scope="function")
def shopper(normal_user) -> AuthenticatedUser:
    return AuthenticatedUser(user_id=normal_user.id)


@pytest.fixture(scope="function")
def guest() -> AnonymousSession:
    return AnonymousSession(token=f"sess_{uuid.uuid4().hex}")
