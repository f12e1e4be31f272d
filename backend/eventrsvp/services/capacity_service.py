"""Capacity aggregation: attending count and remaining seats per event.

The aggregate is derived from the rsvps table on every call and never cached:
admission decisions depend on it reflecting the latest committed writes.
``remaining`` is not floored at zero; any value <= 0 means sold out.
"""
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from eventrsvp.errors import NotFoundError
from eventrsvp.models.event import Event
from eventrsvp.models.rsvp import RSVP, RSVPStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityAggregate:
    event_id: str
    capacity: int
    attending_count: int

    @property
    def remaining(self) -> int:
        return self.capacity - self.attending_count

    @property
    def sold_out(self) -> bool:
        return self.remaining <= 0

    def as_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "capacity": self.capacity,
            "attending_count": self.attending_count,
            "remaining": self.remaining,
        }


def _capacity_query(db: Session):
    """Same shape as the event_capacity_view database view."""
    attending = func.count(RSVP.rsvp_id)
    return (
        db.query(Event.event_id, Event.capacity, attending.label("attending_count"))
        .outerjoin(
            RSVP,
            and_(RSVP.event_id == Event.event_id, RSVP.status == RSVPStatus.attending),
        )
        .group_by(Event.event_id, Event.capacity)
    )


def attending_count(db: Session, event_id: str) -> int:
    """Count attending responses for one event, including this session's pending writes."""
    return (
        db.query(func.count(RSVP.rsvp_id))
        .filter(RSVP.event_id == event_id, RSVP.status == RSVPStatus.attending)
        .scalar()
    ) or 0


def get_capacity(db: Session, event_id: str) -> CapacityAggregate:
    row = _capacity_query(db).filter(Event.event_id == event_id).first()
    if row is None:
        raise NotFoundError("Event not found")
    return CapacityAggregate(row.event_id, row.capacity, row.attending_count)


def get_capacities(db: Session, event_ids: Iterable[str]) -> dict[str, CapacityAggregate]:
    """Batched lookup for list views: one query for any number of events.

    Unknown ids are simply absent from the result.
    """
    ids = list(dict.fromkeys(event_ids))
    if not ids:
        return {}
    rows = _capacity_query(db).filter(Event.event_id.in_(ids)).all()
    logger.debug("Computed capacity for %d of %d requested events", len(rows), len(ids))
    return {
        row.event_id: CapacityAggregate(row.event_id, row.capacity, row.attending_count)
        for row in rows
    }
