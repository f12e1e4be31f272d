"""Admission control for public RSVP submissions.

A submission is checked, then written, then re-checked before commit:

1. Validate and normalize input (no storage access yet)
2. Lock the event row (``SELECT ... FOR UPDATE`` where the backend has it)
3. Reject a second response for the same (event, email), whatever its status
4. Reject ``attending`` once remaining seats are <= 0; ``maybe`` and
   ``declined`` never consume a seat and are always admitted
5. Insert, flush, and for ``attending`` recount inside the same transaction.
   Two submitters racing for the last seat both pass step 4; the loser sees
   an over-capacity recount here and is rolled back with the same error it
   would have got from the pre-check. The unique constraint on
   (event_id, email) plays the same role for duplicates.

A rejected submission never leaves a row behind.
"""
import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from eventrsvp.errors import (
    CapacityExceededError,
    DuplicateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from eventrsvp.models.event import Event
from eventrsvp.models.rsvp import RSVP, RSVPStatus
from eventrsvp.services import capacity_service
from eventrsvp.services.event_service import check_ownership

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 320


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def parse_status(value) -> RSVPStatus:
    try:
        return RSVPStatus(value)
    except ValueError:
        raise ValidationError("invalid status")


def validate_submission(name: str, email: str, status) -> tuple[str, str, RSVPStatus]:
    """Fail fast on malformed input; returns the normalized triple."""
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("name required")
    clean_email = normalize_email(email)
    if len(clean_email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(clean_email):
        raise ValidationError("invalid email")
    return clean_name, clean_email, parse_status(status)


def _find_existing(db: Session, event_id: str, email: str) -> RSVP | None:
    return (
        db.query(RSVP)
        .filter(RSVP.event_id == event_id, RSVP.email == email)
        .first()
    )


def submit_rsvp(
    db: Session,
    event_id: str,
    name: str,
    email: str,
    status: str,
) -> tuple[RSVP, capacity_service.CapacityAggregate]:
    """Admit a public response, or raise the typed reason it was rejected."""
    name, email, rsvp_status = validate_submission(name, email, status)

    try:
        event = (
            db.query(Event)
            .filter(Event.event_id == event_id)
            .with_for_update()
            .first()
        )
        if not event:
            raise NotFoundError("Event not found")

        if _find_existing(db, event_id, email):
            logger.info("Rejected duplicate RSVP for event %s from %s", event_id, email)
            raise DuplicateError()

        if rsvp_status == RSVPStatus.attending:
            aggregate = capacity_service.get_capacity(db, event_id)
            if aggregate.sold_out:
                logger.info("Rejected attending RSVP for sold-out event %s", event_id)
                raise CapacityExceededError()

        rsvp = RSVP(event_id=event_id, name=name, email=email, status=rsvp_status)
        db.add(rsvp)
        db.flush()

        # Write-time recheck: our row is already counted
        if rsvp_status == RSVPStatus.attending:
            if capacity_service.attending_count(db, event_id) > event.capacity:
                logger.info("Lost the race for the last seat of event %s; rolling back", event_id)
                raise CapacityExceededError()

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _find_existing(db, event_id, email):
            logger.info("Rejected duplicate RSVP for event %s from %s at write time", event_id, email)
            raise DuplicateError() from exc
        logger.exception("Integrity failure while saving RSVP for event %s", event_id)
        raise StorageError() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure while saving RSVP for event %s", event_id)
        raise StorageError() from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(rsvp)
    aggregate = capacity_service.get_capacity(db, event_id)
    logger.info(
        "Accepted '%s' RSVP %s for event %s (%d remaining)",
        rsvp_status.value, rsvp.rsvp_id, event_id, aggregate.remaining,
    )
    return rsvp, aggregate


def _get_owned_rsvp(db: Session, rsvp_id: str, requester_id: str) -> RSVP:
    row = (
        db.query(RSVP, Event)
        .join(Event, RSVP.event_id == Event.event_id)
        .filter(RSVP.rsvp_id == rsvp_id)
        .first()
    )
    if not row:
        raise NotFoundError("RSVP not found")
    rsvp, event = row
    check_ownership(event, requester_id)
    return rsvp


def update_rsvp_status(db: Session, rsvp_id: str, requester_id: str, new_status: str) -> RSVP:
    """Organizer override of a response's status.

    No capacity check: an organizer may knowingly promote past capacity.
    """
    rsvp_status = parse_status(new_status)
    rsvp = _get_owned_rsvp(db, rsvp_id, requester_id)
    previous = rsvp.status
    rsvp.status = rsvp_status
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure while updating RSVP %s", rsvp_id)
        raise StorageError() from exc
    db.refresh(rsvp)
    logger.info("RSVP %s status %s -> %s by organizer %s", rsvp_id, previous.value, rsvp_status.value, requester_id)
    return rsvp


def delete_rsvp(db: Session, rsvp_id: str, requester_id: str) -> None:
    rsvp = _get_owned_rsvp(db, rsvp_id, requester_id)
    db.delete(rsvp)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure while deleting RSVP %s", rsvp_id)
        raise StorageError() from exc
    logger.info("Deleted RSVP %s by organizer %s", rsvp_id, requester_id)
