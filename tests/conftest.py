"""
Shared pytest fixtures for the SmartServe test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - owner / other_user: Pre-created users with fixed ids 42 and 99
    - lifecycle: The RequestLifecycleManager wired by create_app
    - owner_headers / other_headers: Bearer headers for owner / other_user
    - headers_for: Bearer header factory for an arbitrary user id
"""

import pytest

from smartserve import create_app
from smartserve.models import db as _db
from smartserve.models.auth import User
from smartserve.services.jwt_service import generate_access_token
from smartserve.services.request_lifecycle import get_lifecycle
from smartserve.utils.crypto import hash_password

OWNER_ID = 42
OTHER_ID = 99
DEFAULT_PASSWORD = "secret123"


def _make_user(user_id=None, username=None, password=DEFAULT_PASSWORD):
    """Create and commit a User. Username and email derive from the id."""
    suffix = user_id if user_id is not None else username
    user = User(
        id=user_id,
        username=username or f"user{suffix}",
        email=f"user{suffix}@example.com",
        password_hash=hash_password(password, rounds=4),
    )
    _db.session.add(user)
    _db.session.commit()
    return user


def _auth_headers(user_id):
    """Bearer header for ``user_id`` (requires an app context)."""
    return {"Authorization": f"Bearer {generate_access_token(user_id)}"}


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def owner():
    return _make_user(OWNER_ID)


@pytest.fixture()
def other_user():
    return _make_user(OTHER_ID)


@pytest.fixture()
def lifecycle():
    return get_lifecycle()


@pytest.fixture()
def owner_headers(owner):
    return _auth_headers(owner.id)


@pytest.fixture()
def other_headers(other_user):
    return _auth_headers(other_user.id)


@pytest.fixture()
def headers_for():
    """Factory: ``headers_for(user_id)`` returns a Bearer header dict."""
    return _auth_headers
