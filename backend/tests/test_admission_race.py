"""Admission under contention and store failure.

The pre-checks in submit_rsvp read shared state that another submitter can
change before our insert lands. These tests force that window open
deterministically (stale pre-check) and also race real threads. A failing
store must roll the transaction back and surface as StorageError.
"""
import threading
from datetime import datetime, timezone, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from eventrsvp.errors import CapacityExceededError, DuplicateError, StorageError
from eventrsvp.models.event import Event
from eventrsvp.models.rsvp import RSVP, RSVPStatus
from eventrsvp.services import admission_service, capacity_service, event_service
from tests.conftest import ORGANIZER_A, create_test_event, submit_rsvp


def _make_event(db, capacity: int = 1) -> Event:
    event = Event(
        title="Race",
        date=datetime.now(timezone.utc) + timedelta(days=3),
        location="Varna",
        capacity=capacity,
        created_by="organizer-a",
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def _add_rsvp(db, event_id: str, email: str, status=RSVPStatus.attending) -> None:
    db.add(RSVP(event_id=event_id, name="Earlier", email=email, status=status))
    db.commit()


class TestLostRace:
    """Pre-check passes on stale data; the write-time recheck must reject."""

    def test_capacity_recheck_rejects_and_rolls_back(self, db, monkeypatch):
        event = _make_event(db, capacity=1)
        event_id = event.event_id
        _add_rsvp(db, event_id, "winner@example.com")

        # The pre-check still believes the seat is free
        monkeypatch.setattr(
            capacity_service, "get_capacity",
            lambda _db, eid: capacity_service.CapacityAggregate(eid, 1, 0),
        )

        with pytest.raises(CapacityExceededError):
            admission_service.submit_rsvp(db, event_id, "Loser", "loser@example.com", "attending")

        monkeypatch.undo()
        assert db.query(RSVP).filter(RSVP.email == "loser@example.com").count() == 0
        assert capacity_service.get_capacity(db, event_id).attending_count == 1

    def test_lost_race_message_matches_precheck(self, db, monkeypatch):
        event = _make_event(db, capacity=1)
        _add_rsvp(db, event.event_id, "winner@example.com")

        with pytest.raises(CapacityExceededError) as precheck:
            admission_service.submit_rsvp(db, event.event_id, "A", "a@example.com", "attending")

        monkeypatch.setattr(
            capacity_service, "get_capacity",
            lambda _db, eid: capacity_service.CapacityAggregate(eid, 1, 0),
        )
        with pytest.raises(CapacityExceededError) as recheck:
            admission_service.submit_rsvp(db, event.event_id, "B", "b@example.com", "attending")

        assert precheck.value.message == recheck.value.message

    def test_unique_constraint_reports_duplicate(self, db, monkeypatch):
        event = _make_event(db, capacity=5)
        event_id = event.event_id
        _add_rsvp(db, event_id, "same@example.com", status=RSVPStatus.maybe)

        real_find = admission_service._find_existing
        calls = []

        def _miss_first_time(session, eid, email):
            calls.append(email)
            if len(calls) == 1:
                return None
            return real_find(session, eid, email)

        monkeypatch.setattr(admission_service, "_find_existing", _miss_first_time)

        with pytest.raises(DuplicateError):
            admission_service.submit_rsvp(db, event_id, "Again", "same@example.com", "attending")

        assert db.query(RSVP).filter(RSVP.event_id == event_id).count() == 1


class TestConcurrentSubmissions:
    """Two threads, one seat: exactly one acceptance, never two."""

    @pytest.mark.parametrize("round_", range(3))
    def test_one_seat_two_submitters(self, session_factory, round_):
        setup = session_factory()
        event_id = _make_event(setup, capacity=1).event_id
        setup.close()

        barrier = threading.Barrier(2)
        outcomes: list[str] = []
        lock = threading.Lock()

        def _submit(email: str):
            session = session_factory()
            try:
                barrier.wait()
                admission_service.submit_rsvp(session, event_id, "Racer", email, "attending")
                result = "accepted"
            except CapacityExceededError:
                result = "capacity"
            except Exception as exc:  # surfaced through the assertion below
                result = f"unexpected: {exc!r}"
            finally:
                session.close()
            with lock:
                outcomes.append(result)

        threads = [
            threading.Thread(target=_submit, args=(f"racer{i}@example.com",)) for i in range(2)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert sorted(outcomes) == ["accepted", "capacity"]

        check = session_factory()
        try:
            assert capacity_service.get_capacity(check, event_id).attending_count == 1
        finally:
            check.close()

    def test_non_attending_never_blocked(self, session_factory):
        setup = session_factory()
        event_id = _make_event(setup, capacity=0).event_id
        setup.close()

        errors: list[Exception] = []

        def _submit(i: int):
            session = session_factory()
            try:
                status = "maybe" if i % 2 else "declined"
                admission_service.submit_rsvp(session, event_id, "Guest", f"g{i}@example.com", status)
            except Exception as exc:
                errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=_submit, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert errors == []
        check = session_factory()
        try:
            assert check.query(RSVP).filter(RSVP.event_id == event_id).count() == 4
        finally:
            check.close()


def _raise(exc):
    def _fail(*args, **kwargs):
        raise exc
    return _fail


class TestStorageFailures:
    """Store failures surface as StorageError and leave nothing behind."""

    def test_commit_failure_rolls_back(self, db, monkeypatch):
        event_id = _make_event(db, capacity=3).event_id
        monkeypatch.setattr(
            Session, "commit", _raise(OperationalError("COMMIT", {}, Exception("disk I/O error"))),
        )

        with pytest.raises(StorageError):
            admission_service.submit_rsvp(db, event_id, "Ana", "ana@example.com", "attending")

        monkeypatch.undo()
        assert db.query(RSVP).filter(RSVP.event_id == event_id).count() == 0
        assert capacity_service.get_capacity(db, event_id).remaining == 3

    def test_integrity_failure_without_duplicate(self, db, monkeypatch):
        event_id = _make_event(db, capacity=3).event_id
        monkeypatch.setattr(
            Session, "flush",
            _raise(IntegrityError("INSERT", {}, Exception("CHECK constraint failed"))),
        )

        with pytest.raises(StorageError):
            admission_service.submit_rsvp(db, event_id, "Ana", "ana@example.com", "maybe")

        monkeypatch.undo()
        assert db.query(RSVP).filter(RSVP.event_id == event_id).count() == 0

    def test_submit_endpoint_returns_503(self, client, db, monkeypatch):
        event = create_test_event(client, capacity=3)
        monkeypatch.setattr(
            Session, "commit", _raise(OperationalError("COMMIT", {}, Exception("database is locked"))),
        )

        resp = submit_rsvp(client, event["event_id"], "ana@example.com")

        monkeypatch.undo()
        assert resp.status_code == 503
        assert resp.json() == {
            "error": "storage_error",
            "detail": StorageError.default_message,
        }
        assert db.query(RSVP).filter(RSVP.event_id == event["event_id"]).count() == 0

    def test_event_delete_failure_keeps_event_and_responses(self, client, db, monkeypatch):
        event = create_test_event(client)
        submit_rsvp(client, event["event_id"], "ana@example.com")
        monkeypatch.setattr(
            Session, "commit", _raise(OperationalError("COMMIT", {}, Exception("disk full"))),
        )

        resp = client.delete(f"/api/events/{event['event_id']}?requester_id={ORGANIZER_A}")

        monkeypatch.undo()
        assert resp.status_code == 503
        assert resp.json()["error"] == "storage_error"
        assert client.get(f"/api/events/{event['event_id']}").status_code == 200
        assert db.query(RSVP).filter(RSVP.event_id == event["event_id"]).count() == 1

    def test_create_event_failure(self, db, monkeypatch):
        monkeypatch.setattr(
            Session, "commit", _raise(OperationalError("COMMIT", {}, Exception("disk full"))),
        )

        with pytest.raises(StorageError):
            event_service.create_event(
                db, ORGANIZER_A, "Launch", datetime.now(timezone.utc), "Sofia", 10,
            )

        monkeypatch.undo()
        assert db.query(Event).count() == 0
