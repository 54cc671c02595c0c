"""Tests for auth endpoints: login, refresh-token, logout, change-password."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from jose import jwt
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import async_session_maker
from app.models.refresh_token import RefreshToken
from conftest import TEST_EMAIL, TEST_PASSWORD


async def _login(client: AsyncClient, email: str = TEST_EMAIL, password: str = TEST_PASSWORD):
    return await client.post("/api/v1/login", json={"email": email, "password": password})


async def _stored_tokens(token: str) -> list[RefreshToken]:
    async with async_session_maker() as session:
        r = await session.execute(select(RefreshToken).where(RefreshToken.token == token))
        return list(r.scalars().all())


@pytest.mark.asyncio
async def test_login(client: AsyncClient, test_user):
    resp = await _login(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 200
    assert body["message"] == "Login successfully"
    assert body["data"]["accessToken"]
    assert body["data"]["refreshToken"]
    assert len(await _stored_tokens(body["data"]["refreshToken"])) == 1


@pytest.mark.asyncio
async def test_login_unknown_email_and_wrong_password_are_indistinguishable(client: AsyncClient, test_user):
    wrong_password = await _login(client, password="Wrong@1234")
    unknown_email = await _login(client, email="nobody@test.com")
    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_validation_runs_before_lookup(client: AsyncClient, test_user):
    resp = await client.post("/api/v1/login", json={"email": "not-an-email", "password": TEST_PASSWORD})
    assert resp.status_code == 400
    assert "email" in resp.json()["message"]

    resp = await client.post("/api/v1/login", json={"email": TEST_EMAIL, "password": "short"})
    assert resp.status_code == 400
    assert resp.json()["message"] == '"password" is invalid'

    resp = await client.post("/api/v1/login", json={"email": TEST_EMAIL})
    assert resp.status_code == 400
    assert resp.json()["message"] == '"password" is required'


@pytest.mark.asyncio
async def test_refresh_returns_new_access_token_and_same_refresh_token(client: AsyncClient, test_user):
    tokens = (await _login(client)).json()["data"]
    resp = await client.post("/api/v1/refresh-token", json={"token": tokens["refreshToken"]})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["refreshToken"] == tokens["refreshToken"]
    assert data["accessToken"]
    users = await client.get("/api/v1/users", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert users.status_code == 200


@pytest.mark.asyncio
async def test_refresh_requires_token(client: AsyncClient):
    resp = await client.post("/api/v1/refresh-token", json={})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Token is required"


@pytest.mark.asyncio
async def test_refresh_unknown_token(client: AsyncClient, test_user):
    resp = await client.post("/api/v1/refresh-token", json={"token": "never-issued"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_refresh_past_stored_expiry_is_revoked(client: AsyncClient, test_user):
    refresh = (await _login(client)).json()["data"]["refreshToken"]
    async with async_session_maker() as session:
        await session.execute(
            update(RefreshToken)
            .where(RefreshToken.token == refresh)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        await session.commit()

    resp = await client.post("/api/v1/refresh-token", json={"token": refresh})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid token"
    assert await _stored_tokens(refresh) == []


@pytest.mark.asyncio
async def test_refresh_with_expired_signature_reports_expired_then_invalid(client: AsyncClient, test_user):
    user, _ = test_user
    expired = jwt.encode(
        {"id": user.id, "name": user.name, "email": user.email, "exp": datetime.now(timezone.utc) - timedelta(days=1)},
        "test-refresh-secret",
        algorithm="HS256",
    )
    async with async_session_maker() as session:
        session.add(
            RefreshToken(user_id=user.id, token=expired, expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        )
        await session.commit()

    first = await client.post("/api/v1/refresh-token", json={"token": expired})
    assert first.status_code == 400
    assert first.json()["message"] == "Token expired"
    assert await _stored_tokens(expired) == []

    second = await client.post("/api/v1/refresh-token", json={"token": expired})
    assert second.status_code == 400
    assert second.json()["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_refresh_with_forged_signature_is_revoked(client: AsyncClient, test_user):
    user, _ = test_user
    forged = jwt.encode(
        {"id": user.id, "exp": datetime.now(timezone.utc) + timedelta(days=1)},
        "attacker-secret",
        algorithm="HS256",
    )
    async with async_session_maker() as session:
        session.add(
            RefreshToken(user_id=user.id, token=forged, expires_at=datetime.now(timezone.utc) + timedelta(days=1))
        )
        await session.commit()
    resp = await client.post("/api/v1/refresh-token", json={"token": forged})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Token expired"
    assert await _stored_tokens(forged) == []


@pytest.mark.asyncio
async def test_logout_then_refresh_fails(client: AsyncClient, auth_headers: dict):
    refresh = (await _login(client)).json()["data"]["refreshToken"]
    resp = await client.post("/api/v1/logout", json={"token": refresh}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logged out successfully"

    resp = await client.post("/api/v1/refresh-token", json={"token": refresh})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid token"


@pytest.mark.asyncio
async def test_logout_is_idempotent(client: AsyncClient, auth_headers: dict):
    for _ in range(2):
        resp = await client.post("/api/v1/logout", json={"token": "already-gone"}, headers=auth_headers)
        assert resp.status_code == 200


@pytest.mark.asyncio
async def test_logout_requires_refresh_token(client: AsyncClient, auth_headers: dict):
    resp = await client.post("/api/v1/logout", json={}, headers=auth_headers)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_protected_endpoint_without_token(client: AsyncClient):
    resp = await client.post("/api/v1/logout", json={"token": "x"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token is required"


@pytest.mark.asyncio
async def test_protected_endpoint_with_bad_token(client: AsyncClient):
    resp = await client.get("/api/v1/users", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 403
    assert resp.json()["message"] == "Invalid access token"


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client: AsyncClient, test_user):
    refresh = (await _login(client)).json()["data"]["refreshToken"]
    resp = await client.get("/api/v1/users", headers={"Authorization": f"Bearer {refresh}"})
    assert resp.status_code == 403


async def _change(client: AsyncClient, headers: dict, old: str, new: str, confirm: str):
    return await client.post(
        "/api/v1/change-password",
        json={"oldPassword": old, "newPassword": new, "confirmPassword": confirm},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_change_password_rejects_same_password(client: AsyncClient, auth_headers: dict):
    resp = await _change(client, auth_headers, TEST_PASSWORD, TEST_PASSWORD, TEST_PASSWORD)
    assert resp.status_code == 400
    assert resp.json()["message"] == "password and old password should be different"


@pytest.mark.asyncio
async def test_change_password_rejects_mismatched_confirmation(client: AsyncClient, auth_headers: dict):
    resp = await _change(client, auth_headers, TEST_PASSWORD, "New@12345", "New@54321")
    assert resp.status_code == 400
    assert resp.json()["message"] == '"Confirm Password" must match Password'


@pytest.mark.asyncio
async def test_change_password_rejects_weak_new_password(client: AsyncClient, auth_headers: dict):
    resp = await _change(client, auth_headers, TEST_PASSWORD, "weakpass", "weakpass")
    assert resp.status_code == 400
    assert resp.json()["message"] == '"newPassword" is invalid'


@pytest.mark.asyncio
async def test_change_password_rejects_wrong_old_password(client: AsyncClient, auth_headers: dict):
    resp = await _change(client, auth_headers, "Wrong@1234", "New@12345", "New@12345")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_change_password_success(client: AsyncClient, auth_headers: dict):
    resp = await _change(client, auth_headers, TEST_PASSWORD, "New@12345", "New@12345")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Password changed"

    assert (await _login(client, password="New@12345")).status_code == 200
    assert (await _login(client, password=TEST_PASSWORD)).status_code == 401


@pytest.mark.asyncio
async def test_change_password_requires_auth(client: AsyncClient, test_user):
    resp = await _change(client, {}, TEST_PASSWORD, "New@12345", "New@12345")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_commit_failure_is_500_and_issues_nothing(client: AsyncClient, test_user):
    user, _ = test_user
    with patch.object(AsyncSession, "commit", side_effect=SQLAlchemyError("database is locked")):
        resp = await _login(client)
    assert resp.status_code == 500
    assert resp.json() == {"code": 500, "message": "Internal server error"}
    async with async_session_maker() as session:
        r = await session.execute(select(RefreshToken).where(RefreshToken.user_id == user.id))
        assert r.scalars().all() == []


@pytest.mark.asyncio
async def test_change_password_commit_failure_keeps_old_password(client: AsyncClient, auth_headers: dict):
    with patch.object(AsyncSession, "commit", side_effect=SQLAlchemyError("database is locked")):
        resp = await _change(client, auth_headers, TEST_PASSWORD, "New@12345", "New@12345")
    assert resp.status_code == 500
    assert (await _login(client)).status_code == 200
    assert (await _login(client, password="New@12345")).status_code == 401
