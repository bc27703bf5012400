"""
tests/conftest.py -- Shared test fixtures for Nori unit and integration tests.

This module provides:
  - FakeClock: a controllable UTC clock for expiry tests (no sleeping)
  - engine / credential_store / session_manager: isolated in-memory stores
  - api_client: TestClient against the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
TestClient because route handlers run in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.
"""

from __future__ import annotations

import itertools
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.credentials import CredentialStore
from auth.schema import create_db_engine
from auth.sessions import SessionManager
from core.config import Settings

TEST_TTL_SECONDS = 10

_db_counter = itertools.count()


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


def _memory_url(name: str) -> str:
    """Return a unique named shared-memory SQLite URL."""
    return f"sqlite:///file:{name}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_db_engine(_memory_url("test_auth"))
    yield eng
    eng.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credential_store(engine: Engine) -> CredentialStore:
    return CredentialStore(engine)


@pytest.fixture
def session_manager(engine: Engine, clock: FakeClock) -> SessionManager:
    return SessionManager(engine, ttl_seconds=TEST_TTL_SECONDS, clock=clock)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine, settings: Settings, clock: FakeClock):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see an
    isolated test DB rather than the configured database, and gives the
    session manager the controllable clock.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.engine = engine
        app.state.credential_store = CredentialStore(engine)
        app.state.session_manager = SessionManager(
            engine,
            ttl_seconds=settings.session_ttl_seconds,
            cookie_name=settings.session_cookie_name,
            clock=clock,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, FakeClock], None, None]:
    """Yield (client, clock) for API integration tests.

    One TestClient per test module for speed. Tests use distinct usernames so
    they do not depend on each other's state. The clock starts at the real
    current time so cookie Expires dates look sensible, and tests advance it
    to exercise expiry.
    """
    eng = create_db_engine(_memory_url("test_api"))
    settings = Settings(session_ttl_seconds=TEST_TTL_SECONDS, database_url="sqlite://")
    clock = FakeClock(datetime.now(timezone.utc))

    app.router.lifespan_context = _patch_lifespan(eng, settings, clock)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, clock

    eng.dispose()
