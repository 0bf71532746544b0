"""
Pytest configuration and fixtures

Every test runs against a fresh in-memory SQLite schema and a fresh
application (so a fresh cache store). Environment is set before any
application module is imported.
"""
import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-for-testing-at-least-32-chars")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-for-testing-at-least-32-chars")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("COOKIE_SAMESITE", "lax")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Add the project root to the path so tests import the application modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from core.database import Base, SessionLocal, engine
import models  # noqa: F401  (registers tables)
from models import User
from main import create_app

DEFAULT_PASSWORD = "SecureP@ss123"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    """Anonymous client (no cookies)."""
    return TestClient(app)


def signup(client: TestClient, username: str, password: str = DEFAULT_PASSWORD, **overrides):
    body = {
        "username": username,
        "fullName": overrides.pop("full_name", "Test Person"),
        "email": overrides.pop("email", f"{username.lower()}@example.com"),
        "password": password,
    }
    return client.post("/api/v1/user/signup", json=body)


def make_admin(username: str) -> None:
    session = SessionLocal()
    try:
        user = session.query(User).filter(User.username == username.lower()).one()
        user.is_admin = True
        session.commit()
    finally:
        session.close()


@pytest.fixture
def login_as(app):
    """
    Factory: sign up (if needed) and log in; returns a client carrying the
    account's cookies.
    """

    def _login(username: str, admin: bool = False) -> TestClient:
        user_client = TestClient(app)
        signup(user_client, username)
        if admin:
            make_admin(username)
        response = user_client.post(
            "/api/v1/user/login",
            json={"username": username, "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200, response.text
        return user_client

    return _login


@pytest.fixture
def alice(login_as):
    return login_as("alice")


@pytest.fixture
def bobby(login_as):
    return login_as("bobby")


@pytest.fixture
def admin(login_as):
    return login_as("admin", admin=True)
