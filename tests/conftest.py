import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="telecare-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ["LLM_PROVIDER"] = "openai"

import httpx  # noqa: E402
import pytest  # noqa: E402

from telecare.database import AsyncSessionLocal, engine  # noqa: E402
from telecare.main import app  # noqa: E402
from telecare.models import Base, User  # noqa: E402
from telecare.security import hash_password  # noqa: E402
from telecare.voice_api import recordings  # noqa: E402


@pytest.fixture(autouse=True)
async def fresh_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await recordings.clear()
    yield
    await engine.dispose()


@pytest.fixture
async def db():
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def make_user(db, user_type="patient", username=None, email=None):
    user = User(
        username=username,
        email=email or f"{username or user_type}@example.com",
        user_type=user_type,
        password_hash=hash_password("secret123"),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def auth_headers(client, email, password="secret123", username=None, user_type="patient"):
    resp = await client.post("/auth/signup", json={
        "email": email,
        "password": password,
        "username": username,
        "user_type": user_type,
    })
    assert resp.status_code == 201, resp.text
    resp = await client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
async def patient_headers(client):
    return await auth_headers(client, "pat@example.com", username="Jane Patient")


@pytest.fixture
async def doctor_headers(client):
    return await auth_headers(client, "doc@example.com", username="Dr. House", user_type="doctor")
