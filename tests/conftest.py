"""Shared fixtures: an app on the in-memory ledger and a signed-up user."""
from __future__ import annotations

import random

import pytest

from ecoclean import create_app
from ecoclean.store import MemoryLedgerStore

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret-key-0123456789",
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "LEDGER_BACKEND": "memory",
    "IDENTITY_PROVIDER": "local",
    "API_PREFIX": "/api",
}


@pytest.fixture
def store():
    return MemoryLedgerStore()


@pytest.fixture
def app(store):
    return create_app(dict(TEST_CONFIG), store=store, rng=random.Random(7))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def signup(client):
    """Sign up + log in; returns ``(user_id, auth_headers)``."""

    def _signup(email="ana@example.com", password="secret123", name="Ana"):
        resp = client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})
        assert resp.status_code == 200, resp.get_json()
        user_id = resp.get_json()["user"]["id"]

        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        token = resp.get_json()["token"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _signup


@pytest.fixture
def auth(signup):
    return signup()
