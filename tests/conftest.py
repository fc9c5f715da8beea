"""
tests/conftest.py -- Shared test fixtures for the admission portal.

This module provides:
  - FakeClock / clock: a controllable epoch-seconds source for TokenEngine
  - student_store / session_store: isolated in-memory SQLite stores
  - access_secret / refresh_secret: fixed signing secrets for unit tests
  - manager: a SessionManager wired to the fake clock and the test stores
  - client: TestClient whose lifespan is patched to use isolated stores

Design: the API fixture uses named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

DEBUG must be set before any api/core import so get_settings() auto-generates
the signing secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.sessions import SessionManager
from auth.store import SessionStore, StudentStore
from auth.tokens import TokenEngine
from core.config import get_settings

ACCESS_SECRET = "a" * 40
REFRESH_SECRET = "r" * 40


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock) -> TokenEngine:
    return TokenEngine(clock=clock)


@pytest.fixture
def student_store() -> Generator[StudentStore, None, None]:
    store = StudentStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def session_store() -> Generator[SessionStore, None, None]:
    store = SessionStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def access_secret() -> str:
    return ACCESS_SECRET


@pytest.fixture
def refresh_secret() -> str:
    return REFRESH_SECRET


@pytest.fixture
def manager(
    engine: TokenEngine,
    student_store: StudentStore,
    session_store: SessionStore,
    access_secret: str,
    refresh_secret: str,
) -> SessionManager:
    return SessionManager(
        engine=engine,
        students=student_store,
        sessions=session_store,
        access_secret=access_secret,
        refresh_secret=refresh_secret,
        access_ttl="15m",
        refresh_ttl="7d",
    )


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(student_store: StudentStore, session_store: SessionStore):
    """Return a lifespan that wires test stores into app.state.

    Uses the real clock: cookies and tokens behave exactly as in production.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.student_store = student_store
        app.state.session_store = session_store
        app.state.session_manager = SessionManager(
            engine=TokenEngine(),
            students=student_store,
            sessions=session_store,
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
        )
        yield

    return test_lifespan


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Fresh TestClient (and cookie jar) per test against isolated stores."""
    suffix = uuid.uuid4().hex
    url = f"sqlite:///file:test_admission_{suffix}?mode=memory&cache=shared&uri=true"
    student_store = StudentStore(url)
    session_store = SessionStore(url)

    app.router.lifespan_context = _patch_lifespan(student_store, session_store)

    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client

    session_store.close()
    student_store.close()
