"""
tests/conftest.py -- Shared test fixtures for Rollet integration tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for accounts + rosters
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a registered account's bearer token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError. The
bcrypt cost is lowered the same way so hashing does not dominate test time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set env before any auth/core import so get_settings() picks it up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_MIN_ROUNDS", "4")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.identity import IdentityResolver
from auth.store import AccountStore
from auth.tokens import SessionIssuer, hash_password
from roster.store import RosterStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters-long"


def memory_url(prefix: str) -> str:
    """Return a named shared-memory SQLite URL unique to this call."""
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_test_stores(db_suffix: str) -> tuple[AccountStore, RosterStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: String folded into the DB name so test modules don't share
                   state (e.g. 'api', 'service').
    """
    return AccountStore(db_url=memory_url(f"accounts_{db_suffix}")), RosterStore(
        db_url=memory_url(f"people_{db_suffix}")
    )


def _patch_lifespan(account_store: AccountStore, roster_store: RosterStore, issuer: SessionIssuer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the default SQLite file.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, account_store, roster_store, issuer)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Function-scoped stores for unit tests
# ---------------------------------------------------------------------------


@pytest.fixture
def account_store() -> Generator[AccountStore, None, None]:
    store = AccountStore(db_url=memory_url("accounts"))
    yield store
    store.close()


@pytest.fixture
def roster_store() -> Generator[RosterStore, None, None]:
    store = RosterStore(db_url=memory_url("people"))
    yield store
    store.close()


@pytest.fixture
def resolver(account_store: AccountStore) -> IdentityResolver:
    return IdentityResolver(account_store)


@pytest.fixture
def issuer() -> SessionIssuer:
    return SessionIssuer(TEST_SECRET, expire_seconds=3600)


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, account_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    A password account (name="testuser", password="testpass123") is created
    before the client starts and a session token is minted for it.
    """
    from auth.models import Account

    account_store, roster_store = make_test_stores("api")
    issuer = SessionIssuer(TEST_SECRET, expire_seconds=3600)

    account = account_store.create_account(
        Account(
            name="testuser",
            email="testuser@example.com",
            hashed_password=hash_password("testpass123"),
        )
    )
    token = issuer.issue(account.id)

    app.router.lifespan_context = _patch_lifespan(account_store, roster_store, issuer)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, token, account.id

    account_store.close()
    roster_store.close()
