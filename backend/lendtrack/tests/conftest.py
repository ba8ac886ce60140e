"""
Shared fixtures: in-memory database, pinned "today" and a few people.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import lendtrack.models  # noqa: F401
from lendtrack.db.base import Base
from lendtrack.db.session import get_db
from lendtrack.api.dependencies import get_today
from lendtrack.main import app


class Clock:
    """Mutable "today" shared by the app and the test."""
    def __init__(self, today: date):
        self.today = today


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return Clock(date(2024, 2, 1))


@pytest.fixture
def client(session_factory, clock):
    """API client bound to the in-memory database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: clock.today
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_person(client, first_name, last_name="Tester"):
    response = client.post("/api/persons", json={"first_name": first_name, "last_name": last_name})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def people(client):
    """Alice lends; Bob, Carol and Dave borrow."""
    return {
        name: _create_person(client, name.capitalize())
        for name in ("alice", "bob", "carol", "dave")
    }


@pytest.fixture
def trio(client, people):
    """Group of Bob, Carol and Dave."""
    response = client.post(
        "/api/groups",
        json={
            "group_name": "Trio",
            "member_ids": [people["bob"]["id"], people["carol"]["id"], people["dave"]["id"]]
        }
    )
    assert response.status_code == 201
    return response.json()
