"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eventcal.access import CalendarService
from eventcal.db import Base, get_db, make_engine
from eventcal.main import app
from eventcal.storage import CalendarStore


class FakeClock:
    """Clock that only moves when a test says so."""

    def __init__(self, now: int = 1000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(session, clock):
    return CalendarStore(session, clock=clock)


@pytest.fixture
def service(store, clock):
    return CalendarService(store, clock=clock)


@pytest.fixture
def client(session_factory):
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def standup():
    """Minimal event payload."""
    return {"title": "Standup", "start_date": 100, "end_date": 200}


@pytest.fixture
def hike():
    """Event payload with every optional field filled in."""
    return {
        "title": "Big Hike",
        "description": "We hike for 7 days in Norwegian plateau.",
        "color": "#87d45d",
        "start_date": 1691226000,
        "end_date": 1691830800,
        "location_lng": 7.4142,
        "location_lat": 60.052,
        "location_name": "Hardangervidda",
    }
