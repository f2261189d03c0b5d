import os

# must be set before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-that-is-long-enough-for-hs256"
os.environ["ENABLE_SCHEDULER"] = "false"
for var in ("CRON_SECRET", "VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "NEXT_PUBLIC_VAPID_PUBLIC_KEY"):
    os.environ.pop(var, None)

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from cycle_api import models  # noqa: F401
from cycle_api.config import settings
from cycle_api.db import engine
from cycle_api.main import app
from cycle_api.seed import seed_catalog

_emails = itertools.count(1)


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        seed_catalog(s)
    yield


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", None)
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", None)
    monkeypatch.setattr(settings, "NEXT_PUBLIC_VAPID_PUBLIC_KEY", None)


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(client):
    """Sign up a fresh user; returns (user_id, auth headers)."""
    def _make(**extra):
        body = {"name": "Sam", "email": f"user{next(_emails)}@example.com", "password": "secret123", **extra}
        r = client.post("/api/auth/signup", json=body)
        assert r.status_code == 201, r.text
        data = r.json()
        return data["user"]["id"], {"Authorization": f"Bearer {data['access_token']}"}
    return _make


@pytest.fixture
def vapid(monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "BPublicKeyForTests")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "private-key-for-tests")
