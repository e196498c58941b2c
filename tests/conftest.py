"""
Shared pytest fixtures for the Users API tests.

- `cfg`: a Config pointing at a throwaway SQLite file, with a cheap hash work factor
- `store` / `authenticator`: the auth core wired to that database
- `client`: a FastAPI TestClient with startup (schema + bootstrap account) already run
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from users_api.api.server import create_app
from users_api.auth import Authenticator, CredentialStore
from users_api.config import Config
from users_api.db import init_db


TEST_SECRET = "test-secret-not-for-production-use-0123456789"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-password"


class FakeClock:
    """A controllable replacement for `utcnow`."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def cfg(tmp_path):
    return Config(
        DB_DSN=str(tmp_path / "users_api_test.sqlite"),
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_TOKEN_TTL_SECONDS=3600,
        AUTH_PASSWORD_ROUNDS=1000,
        AUTH_UNIFY_LOGIN_ERRORS=False,
        AUTH_BOOTSTRAP_ADMIN_USERNAME=ADMIN_USERNAME,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=ADMIN_PASSWORD,
        AUTH_BOOTSTRAP_ADMIN_ROLE_ID=1,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(cfg):
    init_db(cfg.DB_DSN)
    return CredentialStore(cfg.DB_DSN)


@pytest.fixture
def authenticator(cfg, store, clock):
    return Authenticator(cfg, store, clock=clock)


@pytest.fixture
def app(cfg):
    return create_app(cfg)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client):
    resp = client.post("/auth", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
