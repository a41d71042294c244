"""
tests/conftest.py -- Shared test fixtures for the accounts service.

This module provides:
  - make_store(): an isolated named shared-memory SQLite AccountStore
  - hasher / tokens / store / service: unit-level building blocks
  - api_client: TestClient around the real app with an in-memory store

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

The DEBUG env var must be set before any api/ or core/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenConfig, TokenService
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"


def make_store(name: str | None = None) -> AccountStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        name: Optional DB name. A random one is used when omitted so every
              call gets a fresh, empty database.
    """
    db_name = name or f"accounts_{uuid.uuid4().hex}"
    return AccountStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    # Minimum bcrypt cost keeps the suite fast; the format is identical.
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TokenConfig(secret_key=TEST_SECRET))


@pytest.fixture
def service(store: AccountStore, hasher: PasswordHasher, tokens: TokenService) -> AccountService:
    return AccountService(store=store, hasher=hasher, tokens=tokens, min_password_length=6)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore):
    """Return a lifespan that wires the test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, store, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a fresh in-memory account store.

    Function-scoped: every test starts with an empty database, so tests can
    register "alice" without stepping on each other.
    """
    store = make_store()
    app.router.lifespan_context = _patch_lifespan(store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    store.close()


def register(client: TestClient, username: str = "alice", email: str = "alice@x.com", password: str = "secret1"):
    return client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def login(client: TestClient, email: str = "alice@x.com", password: str = "secret1"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
