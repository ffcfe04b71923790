"""
tests/conftest.py -- Shared test fixtures for the donation tracker.

This module provides:
  - db / user_store / donation_store / sessions: a fresh isolated database
    per test for store-level unit tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: module-scoped TestClient plus an admin session token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. A uuid in
the name keeps every fixture's database separate.

Environment variables must be set before any app import, because
get_settings() is cached and the limiter reads it at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ALLOWED_HOSTS"] = '["*"]'

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role
from auth.sessions import SessionManager
from auth.store import UserStore
from core.database import Database
from donations.store import DonationStore

ADMIN_USERNAME = "testadmin"
ADMIN_PASSWORD = "testpass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_db() -> Database:
    """Create an isolated named shared-memory SQLite database with the schema applied."""
    db = Database(f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    db.create_schema()
    return db


def _patch_lifespan(db: Database, user_store: UserStore, donation_store: DonationStore, sessions: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    the isolated test database rather than the configured one.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = db
        app.state.user_store = user_store
        app.state.donation_store = donation_store
        app.state.sessions = sessions
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Function-scoped fixtures -- one fresh database per store test
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = _make_test_db()
    yield database
    database.close()


@pytest.fixture
def user_store(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def donation_store(db: Database) -> DonationStore:
    return DonationStore(db)


@pytest.fixture
def sessions(user_store: UserStore) -> SessionManager:
    return SessionManager(user_store)


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use an isolated in-memory database.
    The admin user is created and logged in before the client starts.
    """
    db = _make_test_db()
    user_store = UserStore(db)
    donation_store = DonationStore(db)
    sessions = SessionManager(user_store)

    admin = user_store.register(ADMIN_USERNAME, ADMIN_PASSWORD, role=Role.ADMIN)
    token = sessions.login(ADMIN_USERNAME, ADMIN_PASSWORD)

    app.router.lifespan_context = _patch_lifespan(db, user_store, donation_store, sessions)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    db.close()


@pytest.fixture
def volunteer(api_client: tuple[TestClient, str, int]) -> tuple[str, str, int]:
    """Register and log in a fresh USER through the API. Returns (username, token, user_id)."""
    client, _token, _uid = api_client
    username = f"vol_{uuid.uuid4().hex[:8]}"
    resp = client.post("/api/v1/auth/register", json={"username": username, "password": "pw123"})
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["id"]
    resp = client.post("/api/v1/auth/login", json={"username": username, "password": "pw123"})
    assert resp.status_code == 200, resp.text
    return username, resp.json()["access_token"], user_id
