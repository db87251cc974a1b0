from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update

from telecare.models import AuthSession
from telecare.security import hash_password, verify_password

from conftest import auth_headers, make_user


async def test_signup_creates_profile_without_password(client):
    resp = await client.post("/auth/signup", json={
        "email": "Jane@Example.com",
        "password": "secret123",
        "username": "Jane",
        "user_type": "doctor",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "jane@example.com"
    assert body["username"] == "Jane"
    assert body["user_type"] == "doctor"
    assert "password" not in body and "password_hash" not in body


async def test_signup_defaults_to_patient(client):
    resp = await client.post("/auth/signup", json={"email": "p@example.com", "password": "secret123"})
    assert resp.status_code == 201
    assert resp.json()["user_type"] == "patient"
    assert resp.json()["username"] is None


async def test_signup_rejects_short_password_and_bad_email(client):
    resp = await client.post("/auth/signup", json={"email": "p@example.com", "password": "12345"})
    assert resp.status_code == 422
    resp = await client.post("/auth/signup", json={"email": "not-an-email", "password": "secret123"})
    assert resp.status_code == 422


async def test_signup_rejects_duplicate_email(client):
    payload = {"email": "dup@example.com", "password": "secret123"}
    assert (await client.post("/auth/signup", json=payload)).status_code == 201
    resp = await client.post("/auth/signup", json=payload)
    assert resp.status_code == 409


async def test_login_with_wrong_password_fails(client):
    await client.post("/auth/signup", json={"email": "p@example.com", "password": "secret123"})
    resp = await client.post("/auth/login", json={"email": "p@example.com", "password": "wrong-one"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Incorrect email or password"


async def test_profile_requires_token(client):
    assert (await client.get("/users/me")).status_code == 401
    resp = await client.get("/users/me", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


async def test_profile_returns_role(client, doctor_headers):
    resp = await client.get("/users/me", headers=doctor_headers)
    assert resp.status_code == 200
    assert resp.json()["user_type"] == "doctor"
    assert resp.json()["username"] == "Dr. House"


async def test_logout_revokes_token(client, patient_headers):
    assert (await client.post("/auth/logout", headers=patient_headers)).status_code == 204
    assert (await client.get("/users/me", headers=patient_headers)).status_code == 401


async def test_expired_session_is_rejected(client, db):
    headers = await auth_headers(client, "old@example.com")
    await db.execute(update(AuthSession).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)))
    await db.commit()

    resp = await client.get("/users/me", headers=headers)
    assert resp.status_code == 401


async def test_password_hashing_is_salted():
    first, second = hash_password("secret123"), hash_password("secret123")
    assert first != second
    assert verify_password("secret123", first)
    assert not verify_password("secret124", first)
    assert not verify_password("secret123", "garbage")


async def test_login_prunes_expired_sessions(client, db):
    user = await make_user(db, "patient", "Jane", email="jane@example.com")
    db.add(AuthSession(token="stale", user_id=user.id, expires_at=datetime.now(timezone.utc) - timedelta(hours=1)))
    await db.commit()

    resp = await client.post("/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    assert resp.status_code == 200

    res = await db.execute(select(AuthSession.token).where(AuthSession.user_id == user.id))
    tokens = res.scalars().all()
    assert "stale" not in tokens
    assert tokens == [resp.json()["access_token"]]
