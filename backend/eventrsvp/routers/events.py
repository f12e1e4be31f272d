"""Event API routes: delegates to event_service for ownership and validation."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from eventrsvp.config import settings
from eventrsvp.database import get_db
from eventrsvp.schemas.event import CapacityOut, EventCreate, EventOut, EventPage, EventUpdate, OwnedEventOut
from eventrsvp.services import capacity_service, event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=EventPage)
def list_events(
    when: str = Query("upcoming", pattern="^(upcoming|past)$"),
    search: str | None = Query(None, description="Matches title or location"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    """Public listing with the live remaining-seat count of every event."""
    return event_service.list_events_public(db, when=when, search=search, page=page, page_size=page_size)


@router.get("/mine", response_model=list[OwnedEventOut])
def list_my_events(
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    """Events created by the requesting organizer."""
    return event_service.list_events_by_owner(db, requester_id)


@router.post("/", response_model=OwnedEventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    event = event_service.create_event(
        db=db,
        requester_id=requester_id,
        title=payload.title,
        description=payload.description,
        date=payload.date,
        location=payload.location,
        capacity=payload.capacity,
    )
    return event_service.get_event(db, event.event_id)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single event with its capacity aggregate."""
    return event_service.get_event(db, event_id)


@router.get("/{event_id}/capacity", response_model=CapacityOut)
def get_capacity(event_id: str, db: Session = Depends(get_db)):
    return capacity_service.get_capacity(db, event_id).as_dict()


@router.put("/{event_id}", response_model=OwnedEventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    """Update an event (organizer only)."""
    event_service.update_event(
        db=db,
        event_id=event_id,
        requester_id=requester_id,
        updates=payload.model_dump(exclude_unset=True),
    )
    return event_service.get_event(db, event_id)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    """Delete an event together with all of its responses (organizer only)."""
    event_service.delete_event(db, event_id, requester_id)
