from __future__ import annotations

import os
import tempfile
import uuid

# Must be set before the app modules read their configuration.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="murmur-logs-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.UserProfile import UserProfile
from services.presence import InMemoryPresence


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory) -> Session:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def presence() -> InMemoryPresence:
    return InMemoryPresence()


@pytest.fixture()
def client(session_factory, presence):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.presence = presence
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest.fixture()
def make_profile(db_session):
    """Insert a profile directly and return its user id."""
    def _make(username: str, full_name: str | None = None) -> str:
        user_id = str(uuid.uuid4())
        db_session.add(UserProfile(user_id=user_id, username=username, full_name=full_name))
        db_session.commit()
        return user_id

    return _make


@pytest.fixture()
def register(client):
    """Create a profile through the API and return its user id."""
    def _register(username: str, **fields) -> str:
        user_id = str(uuid.uuid4())
        res = client.post("/users", json={"username": username, **fields}, headers=auth(user_id))
        assert res.status_code == 201, res.text
        return user_id

    return _register
