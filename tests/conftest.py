from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.settings import Settings

TEST_SECRET = "test-secret-that-is-at-least-32-characters"


class FakeClock:
    """Settable clock returning timezone-aware UTC datetimes."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_settings(**overrides):
    values = {"jwt_secret": TEST_SECRET, "bcrypt_cost": 4, "log_level": "error"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


def register(client, email="a@b.com", password="password123", name="A"):
    res = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert res.status_code == 201, res.text
    return res.json()["data"]


def login(client, email="a@b.com", password="password123"):
    res = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_token(client):
    register(client)
    return login(client)["token"]
