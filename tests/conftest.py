"""
tests/conftest.py -- Shared test fixtures for TokenGate.

This module provides:
  - _make_test_state(): fresh credential store, codec, revocation set, gate
    and file store for one test module
  - _patch_lifespan(): wires that state into app.state, bypassing real startup
  - api_client: TestClient plus a pre-issued admin token
  - codec / revocations / gate: isolated instances for unit tests

Environment must be set before any api/auth/core import: DEBUG=true lets
get_settings() auto-generate SECRET_KEY instead of raising, and
RATE_LIMIT_ENABLED=false keeps repeated logins from tripping the limiter.
LOGIN_RATE_LIMIT is kept small so the rate-limit test can switch the
limiter on and reach the cap in a handful of requests.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOGIN_RATE_LIMIT", "5/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.gate import AuthGate
from auth.revocation import RevocationSet
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from files.store import FileStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
TEST_USERS = {"admin": "admin123", "user": "user123"}
MAX_UPLOAD_BYTES = 64 * 1024

# ---------------------------------------------------------------------------
# State helpers
# ---------------------------------------------------------------------------


def _make_test_state(upload_dir: Path) -> SimpleNamespace:
    """Build the full set of app.state collaborators with isolated storage.

    bcrypt runs at its minimum cost (rounds=4) so building the credential
    store does not dominate test time.
    """
    codec = TokenCodec(TEST_SECRET, ttl_seconds=3600)
    revocations = RevocationSet()
    return SimpleNamespace(
        credentials=CredentialStore(TEST_USERS, rounds=4),
        token_codec=codec,
        revocations=revocations,
        auth_gate=AuthGate(codec, revocations),
        file_store=FileStore(upload_dir, max_bytes=MAX_UPLOAD_BYTES),
    )


def _patch_lifespan(state: SimpleNamespace):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a real
    asyncio.Task, as the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        for name, value in vars(state).items():
            setattr(app.state, name, value)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(tmp_path_factory) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for API integration tests.

    token is a valid admin bearer token shared by the whole module. Tests that
    log out must log in for their own token -- revoking the shared one would
    break every test that runs after them.
    """
    state = _make_test_state(tmp_path_factory.mktemp("uploads"))
    token = state.token_codec.issue("admin")

    app.router.lifespan_context = _patch_lifespan(state)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(TEST_SECRET, ttl_seconds=60, clock=clock)


@pytest.fixture
def revocations(clock: FakeClock) -> RevocationSet:
    return RevocationSet(clock=clock)


@pytest.fixture
def gate(codec: TokenCodec, revocations: RevocationSet) -> AuthGate:
    return AuthGate(codec, revocations)
