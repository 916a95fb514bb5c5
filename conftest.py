# conftest.py
import os

os.environ.setdefault("APP_SECRET", "test-secret")
os.environ.setdefault("DB_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coffeeshop.main import app
from coffeeshop.db import Base, get_db
from coffeeshop.config import settings

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type", "").startswith("application/json") else r.text


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def base_url():
    return ""


@pytest.fixture
def auth_headers(client, base_url):
    r = client.post(f"{base_url}/admin/init")
    jprint("POST /admin/init", r)

    r = client.post(f"{base_url}/admin/login", json={
        "email": settings.INIT_ADMIN_EMAIL, "password": settings.INIT_ADMIN_PASSWORD,
    })
    jprint("POST /admin/login", r)
    tok = r.cookies[settings.SESSION_COOKIE]
    # keep the jar empty so unauthenticated calls stay unauthenticated
    client.cookies.clear()
    return {"Authorization": f"Bearer {tok}"}


@pytest.fixture
def rng_suffix():
    import random, string
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
