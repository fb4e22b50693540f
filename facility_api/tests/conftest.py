# facility_api/tests/conftest.py
from __future__ import annotations

import os

# Settings are read at import time; point them at throwaway values before any
# facility_api module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from facility_api.database import get_db
from facility_api.models.user import User
from facility_api.tests.support import (
    make_session, actor, REQUESTER_ID, SUPERVISOR_ID, TECH_ID,
)
from facility_api.utils.security import create_access_token


# ==============================================================
# Database: fresh in-memory schema + seed rows per test
# ==============================================================
@pytest.fixture
def db():
    session, engine = make_session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def requester(db):
    return actor(db, REQUESTER_ID)


@pytest.fixture
def supervisor(db):
    return actor(db, SUPERVISOR_ID)


@pytest.fixture
def tech(db):
    return actor(db, TECH_ID)


# ==============================================================
# HTTP: in-process app sharing the test session
# ==============================================================
@pytest.fixture
def client(db):
    from facility_api.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth(db):
    """auth(user_id) -> Authorization header for that seeded user."""
    def _headers(user_id: int) -> dict:
        user = db.get(User, user_id)
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}
    return _headers
