"""Event service: organizer-owned events and their response lists.

Responsibilities:
- Authorization hook: only the creating organizer may edit, delete, or read
  the responses of an event. The check runs in the same session as the data
  access, and owner listings filter by ``created_by`` in SQL.
- Validation of organizer input (title, location, capacity >= 0)
- Atomic cascade delete of an event and all of its responses
- Public listing with upcoming/past filter, search and pagination
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventrsvp.errors import ForbiddenError, NotFoundError, StorageError, ValidationError
from eventrsvp.models.event import Event
from eventrsvp.models.rsvp import RSVP, RSVPStatus
from eventrsvp.services import capacity_service

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("title", "description", "date", "location", "capacity")


def check_ownership(event: Event, requester_id: str) -> None:
    """Only the organizer who created the event may manage it."""
    if not requester_id or event.created_by != requester_id:
        raise ForbiddenError()


def to_utc(value: datetime) -> datetime:
    """Store every instant in UTC; naive input is taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def like_pattern(term: str) -> str:
    """Substring pattern for ``ilike``; wildcards typed by the user match literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Trim and validate organizer-supplied event fields (any subset)."""
    cleaned: dict[str, Any] = {}
    if "title" in fields:
        title = (fields["title"] or "").strip()
        if not title:
            raise ValidationError("title required")
        cleaned["title"] = title
    if "location" in fields:
        location = (fields["location"] or "").strip()
        if not location:
            raise ValidationError("location required")
        cleaned["location"] = location
    if "description" in fields:
        cleaned["description"] = (fields["description"] or "").strip() or None
    if "date" in fields:
        if fields["date"] is None:
            raise ValidationError("date required")
        cleaned["date"] = to_utc(fields["date"])
    if "capacity" in fields:
        capacity = fields["capacity"]
        if capacity is None or capacity < 0:
            raise ValidationError("capacity must be >= 0")
        cleaned["capacity"] = capacity
    return cleaned


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure while trying to %s", action)
        raise StorageError() from exc


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event not found")
    return event


def get_owned_event(db: Session, event_id: str, requester_id: str) -> Event:
    event = get_event_or_404(db, event_id)
    check_ownership(event, requester_id)
    return event


def with_capacity(event: Event, aggregate: Optional[capacity_service.CapacityAggregate]) -> dict:
    """Merge an event's public fields with its live seat count."""
    attending = aggregate.attending_count if aggregate else 0
    return {
        "event_id": event.event_id,
        "title": event.title,
        "description": event.description,
        "date": event.date,
        "location": event.location,
        "capacity": event.capacity,
        "created_by": event.created_by,
        "created_at": event.created_at,
        "attending_count": attending,
        "remaining": event.capacity - attending,
    }


def _with_capacities(db: Session, events: list[Event]) -> list[dict]:
    capacities = capacity_service.get_capacities(db, [e.event_id for e in events])
    return [with_capacity(e, capacities.get(e.event_id)) for e in events]


def create_event(
    db: Session,
    requester_id: str,
    title: str,
    date: datetime,
    location: str,
    capacity: int,
    description: Optional[str] = None,
) -> Event:
    """Create an event owned by the requesting organizer."""
    if not requester_id:
        raise ForbiddenError("Sign in to create events")
    fields = _clean_fields({
        "title": title,
        "description": description,
        "date": date,
        "location": location,
        "capacity": capacity,
    })
    event = Event(created_by=requester_id, **fields)
    db.add(event)
    _commit(db, "create an event")
    db.refresh(event)
    logger.info("Created event '%s' (%s) by organizer %s", event.title, event.event_id, requester_id)
    return event


def update_event(
    db: Session,
    event_id: str,
    requester_id: str,
    updates: dict[str, Any],
) -> Event:
    """Update an event's details. Lowering capacity below attendance is allowed."""
    event = get_owned_event(db, event_id, requester_id)
    cleaned = _clean_fields({k: v for k, v in updates.items() if k in MUTABLE_FIELDS})
    for field, value in cleaned.items():
        setattr(event, field, value)
    _commit(db, "update an event")
    db.refresh(event)
    logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(cleaned)) or "no changes")
    return event


def delete_event(db: Session, event_id: str, requester_id: str) -> None:
    """Delete an event and all of its responses as one unit of work."""
    event = get_owned_event(db, event_id, requester_id)
    response_count = len(event.rsvps)
    db.delete(event)  # ORM cascade removes the rsvps in the same flush
    _commit(db, "delete an event")
    logger.info("Deleted event %s with %d responses", event_id, response_count)


def get_event(db: Session, event_id: str) -> dict:
    event = get_event_or_404(db, event_id)
    return with_capacity(event, capacity_service.get_capacity(db, event_id))


def list_events_by_owner(db: Session, requester_id: str) -> list[dict]:
    """The organizer's own events, latest date first."""
    if not requester_id:
        raise ForbiddenError("Sign in to see your events")
    events = (
        db.query(Event)
        .filter(Event.created_by == requester_id)
        .order_by(Event.date.desc())
        .all()
    )
    return _with_capacities(db, events)


def list_events_public(
    db: Session,
    when: str = "upcoming",
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
    now: Optional[datetime] = None,
) -> dict:
    """Browse events: upcoming soonest first, past most recent first."""
    if when not in ("upcoming", "past"):
        raise ValidationError("when must be 'upcoming' or 'past'")
    if page < 1 or page_size < 1:
        raise ValidationError("page and page_size must be positive")

    now = to_utc(now or datetime.now(timezone.utc))
    query = db.query(Event)
    if when == "upcoming":
        query = query.filter(Event.date >= now).order_by(Event.date.asc())
    else:
        query = query.filter(Event.date < now).order_by(Event.date.desc())

    term = (search or "").strip()
    if term:
        pattern = like_pattern(term)
        query = query.filter(or_(
            Event.title.ilike(pattern, escape="\\"),
            Event.location.ilike(pattern, escape="\\"),
        ))

    total = query.count()
    events = query.offset((page - 1) * page_size).limit(page_size).all()
    return {
        "items": _with_capacities(db, events),
        "total": total,
        "page": page,
        "page_size": page_size,
    }


def list_event_rsvps(
    db: Session,
    event_id: str,
    requester_id: str,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
) -> list[RSVP]:
    """Responses for an event the requester owns, newest first."""
    get_owned_event(db, event_id, requester_id)
    query = (
        db.query(RSVP)
        .join(Event, RSVP.event_id == Event.event_id)
        .filter(RSVP.event_id == event_id, Event.created_by == requester_id)
    )
    if status_filter and status_filter != "all":
        try:
            query = query.filter(RSVP.status == RSVPStatus(status_filter))
        except ValueError:
            raise ValidationError("invalid status")
    term = (search or "").strip().lower()
    if term:
        pattern = like_pattern(term)
        query = query.filter(or_(
            RSVP.email.ilike(pattern, escape="\\"),
            RSVP.name.ilike(pattern, escape="\\"),
        ))
    return query.order_by(RSVP.created_at.desc()).all()


def rsvp_stats(db: Session, event_id: str, requester_id: str) -> dict:
    event = get_owned_event(db, event_id, requester_id)
    counts = {status: 0 for status in RSVPStatus}
    for rsvp in event.rsvps:
        counts[rsvp.status] += 1
    return {
        "total": sum(counts.values()),
        "attending": counts[RSVPStatus.attending],
        "maybe": counts[RSVPStatus.maybe],
        "declined": counts[RSVPStatus.declined],
        "remaining": event.capacity - counts[RSVPStatus.attending],
    }


def attending_emails(db: Session, event_id: str, requester_id: str) -> list[str]:
    rsvps = list_event_rsvps(db, event_id, requester_id, status_filter=RSVPStatus.attending.value)
    return [r.email for r in rsvps]
