# tests/test_auth.py
import pytest
from httpx import AsyncClient

from storefront.core.security import TokenService


@pytest.mark.asyncio
async def test_signup_returns_created_user(client: AsyncClient):
    resp = await client.post("/api/users", json={"username": "alice", "password": "secret123"})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["message"] == "User created successfully"
    assert body["username"] == "alice"
    assert isinstance(body["user_id"], int)


@pytest.mark.asyncio
async def test_signup_duplicate_username(client: AsyncClient):
    payload = {"username": "bob", "password": "secret123"}
    assert (await client.post("/api/users", json=payload)).status_code == 201

    resp = await client.post("/api/users", json=payload)
    assert resp.status_code == 400
    assert resp.json()["code"] == "username_taken"


@pytest.mark.asyncio
async def test_signup_validation_error_is_400(client: AsyncClient):
    resp = await client.post("/api/users", json={"username": "x"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["errors"]


@pytest.mark.asyncio
async def test_login_issues_bearer_token(client: AsyncClient, normal_user):
    resp = await client.post("/api/users/login", json={"username": normal_user.username, "password": "User1234"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user_id"] == normal_user.id
    assert body["expires_in"] == 24 * 60 * 60


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, normal_user):
    resp = await client.post("/api/users/login", json={"username": normal_user.username, "password": "nope!!"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_credentials"
    assert resp.headers["www-authenticate"] == "Bearer"

    resp = await client.post("/api/users/login", json={"username": "ghost", "password": "User1234"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_hides_password_hash(client: AsyncClient, normal_user, auth_headers):
    resp = await client.get("/api/users/me", headers=auth_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["id"] == normal_user.id
    assert body["last_login_at"] is not None
    assert "hashed_password" not in body
    assert "password" not in body


@pytest.mark.asyncio
async def test_users_list_requires_auth(client: AsyncClient, auth_headers):
    assert (await client.get("/api/users")).status_code == 401

    resp = await client.get("/api/users", headers=auth_headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 1


@pytest.mark.asyncio
async def test_invalid_bearer_rejected_even_on_optional_routes(client: AsyncClient):
    headers = {"Authorization": "Bearer not-a-jwt"}
    assert (await client.get("/api/users/me", headers=headers)).status_code == 401
    assert (await client.get("/api/carts", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_expired_and_foreign_tokens_rejected(client: AsyncClient, settings, normal_user):
    expired = TokenService(settings).create_access_token(normal_user.id, expires_minutes=-1)
    resp = await client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"

    foreign_settings = settings.model_copy(update={"SECRET_KEY": "another-secret-key-0123456789"})
    foreign = TokenService(foreign_settings).create_access_token(normal_user.id)
    resp = await client.get("/api/users/me", headers={"Authorization": f"Bearer {foreign}"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_rotated_secret_still_accepted(client: AsyncClient, settings, normal_user):
    old = settings.model_copy(update={"SECRET_KEY": "previous-secret-key-0123456789"})
    token = TokenService(old).create_access_token(normal_user.id)

    rotated = settings.model_copy(update={"SECRET_KEY_FALLBACKS": ["previous-secret-key-0123456789"]})
    assert TokenService(rotated).user_id_from_token(token) == normal_user.id
