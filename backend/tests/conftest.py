"""Pytest fixtures: a fresh SQLite database file for fast, isolated tests."""
from datetime import datetime, timezone, timedelta
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from eventrsvp.database import Base, get_db
from eventrsvp.main import app

import eventrsvp.models  # noqa: F401

ORGANIZER_A = "organizer-a"
ORGANIZER_B = "organizer-b"


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # WAL lets readers proceed while another thread holds the write lock
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create events and RSVPs via the API, return the response JSON
# ---------------------------------------------------------------------------
def create_test_event(
    client: TestClient,
    organizer_id: str = ORGANIZER_A,
    title: str = "Test Event",
    capacity: int = 10,
    location: str = "Sofia",
    days_from_now: int = 7,
    description: str | None = None,
) -> dict:
    """Helper: POST /api/events and return response JSON."""
    date = datetime.now(timezone.utc) + timedelta(days=days_from_now)
    resp = client.post(f"/api/events/?requester_id={organizer_id}", json={
        "title": title,
        "description": description,
        "date": date.isoformat(),
        "location": location,
        "capacity": capacity,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def submit_rsvp(client: TestClient, event_id: str, email: str,
                status: str = "attending", name: str = "Guest"):
    """Helper: POST a public RSVP and return the raw response."""
    return client.post(f"/api/events/{event_id}/rsvps", json={
        "name": name,
        "email": email,
        "status": status,
    })
