"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# gophergather.api.tokens validates the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-api-token")

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gophergather.config import GatherConfig  # noqa: E402
from gophergather.database.models import (  # noqa: E402
    Base,
    Club,
    Event,
    EventStatus,
    User,
    UserType,
)
from gophergather.services.auth_service import hash_password  # noqa: E402

TEST_PASSWORD = "hunter22"


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all GopherGather tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in the rate limiter).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def test_config() -> GatherConfig:
    return GatherConfig(
        campus_name="Test Campus",
        campus_motto="Testing together",
        dashboard_port=8000,
    )


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
@pytest.fixture
def make_club(db_engine: Engine):
    def _make(name: str = "Robotics Club") -> Club:
        with Session(db_engine, expire_on_commit=False) as session:
            club = Club(name=name)
            session.add(club)
            session.commit()
            return club
    return _make


@pytest.fixture
def make_user(db_engine: Engine):
    """Insert a user directly (bypasses sign-up validation)."""
    counter = {"n": 0}

    def _make(
        email: str | None = None,
        *,
        user_type: str = UserType.STUDENT.value,
        club_id: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
        password: str = TEST_PASSWORD,
    ) -> User:
        counter["n"] += 1
        with Session(db_engine, expire_on_commit=False) as session:
            user = User(
                email=email or f"student{counter['n']}@campus.edu",
                password_hash=hash_password(password),
                user_type=user_type,
                club_id=club_id,
                first_name=first_name,
                last_name=last_name,
                email_confirmed=True,
            )
            session.add(user)
            session.commit()
            return user
    return _make


@pytest.fixture
def make_event(db_engine: Engine):
    """Insert an event directly.  Approved and far in the future by default."""

    def _make(**overrides) -> Event:
        fields = {
            "title": "Pizza Night",
            "date": "2099-05-01",
            "start_time": "18:00:00",
            "category": "Social",
            "status": EventStatus.APPROVED.value,
        }
        fields.update(overrides)
        with Session(db_engine, expire_on_commit=False) as session:
            event = Event(**fields)
            session.add(event)
            session.commit()
            return event
    return _make


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
@pytest.fixture
def client(db_engine: Engine, test_config: GatherConfig):
    """TestClient wired to the in-memory database and a fixed config."""
    from fastapi.testclient import TestClient

    from gophergather.api.deps import get_config, get_engine
    from gophergather.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db_engine: Engine):
    """Sign *user* in and return an ``Authorization`` header for it."""
    from gophergather.api import tokens
    from gophergather.services import auth_service

    def _headers(user: User) -> dict[str, str]:
        signed_in, auth_session = auth_service.sign_in(db_engine, user.email, TEST_PASSWORD)
        return {"Authorization": f"Bearer {tokens.issue_token(signed_in, auth_session)}"}
    return _headers
