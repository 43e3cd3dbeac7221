"""Accounts and bearer tokens."""

from datetime import timedelta

import pytest
from sqlalchemy import select

from orderdesk.core.exceptions import AuthFailure, ValidationError
from orderdesk.models import AuthSession, UserRole, utcnow
from orderdesk.schemas import LoginRequest
from orderdesk.services.auth import AuthService, hash_password, verify_password


def test_password_hashing():
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


async def test_register_login_me(client):
    response = await client.post(
        "/api/auth/register",
        json={"name": "Diya", "email": "Diya@Example.com", "password": "secret1"},
    )
    assert response.status_code == 201
    user = response.json()
    assert user["email"] == "diya@example.com"
    assert user["role"] == "customer"

    response = await client.post(
        "/api/auth/login", json={"email": "diya@example.com", "password": "secret1"}
    )
    assert response.status_code == 200
    token = response.json()["token"]

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["name"] == "Diya"


async def test_register_duplicate(client):
    payload = {"email": "dup@example.com", "password": "secret1"}
    assert (await client.post("/api/auth/register", json=payload)).status_code == 201

    response = await client.post("/api/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json()["msg"] == "User already exists"


async def test_register_rejects_bad_input(client):
    response = await client.post(
        "/api/auth/register", json={"email": "not-an-email", "password": "secret1"}
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/auth/register", json={"email": "short@example.com", "password": "123"}
    )
    assert response.status_code == 400


async def test_admin_self_registration_blocked(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "boss@example.com", "password": "secret1", "role": "admin"},
    )
    assert response.status_code == 403


async def test_login_wrong_password(client, admin_token):
    response = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "nope-nope"}
    )
    assert response.status_code == 401
    assert response.json()["msg"] == "Invalid credentials"


async def test_expired_token(db):
    service = AuthService(db)
    await service.create_user("late@example.com", "secret1", UserRole.ADMIN)
    token, _ = await service.login(LoginRequest(email="late@example.com", password="secret1"))

    result = await db.execute(select(AuthSession).where(AuthSession.token == token))
    session = result.scalar_one()
    session.expires_at = utcnow() - timedelta(minutes=1)
    await db.commit()

    with pytest.raises(AuthFailure, match="Token has expired"):
        await service.authenticate(token)
    with pytest.raises(AuthFailure, match="Token is not valid"):
        await service.authenticate(token)


async def test_logout(db):
    service = AuthService(db)
    user = await service.create_user("bye@example.com", "secret1")
    token, _ = await service.login(LoginRequest(email="bye@example.com", password="secret1"))
    assert (await service.authenticate(token)).id == user.id

    await service.logout(token)

    with pytest.raises(AuthFailure):
        await service.authenticate(token)


async def test_create_user_duplicate(db):
    service = AuthService(db)
    await service.create_user("twice@example.com", "secret1")
    with pytest.raises(ValidationError):
        await service.create_user("TWICE@example.com", "secret1")


async def test_logout_route_revokes_token(client, admin_token, admin_headers):
    response = await client.post("/api/auth/logout", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get("/api/auth/me", headers=admin_headers)
    assert response.status_code == 401
    assert response.json()["msg"] == "Token is not valid"


async def test_logout_requires_token(client):
    response = await client.post("/api/auth/logout")
    assert response.status_code == 401
