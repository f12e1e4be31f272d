"""RSVP API routes: public submission and organizer response management."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from eventrsvp.config import settings
from eventrsvp.database import get_db
from eventrsvp.schemas.rsvp import AttendingEmails, RSVPCreate, RSVPOut, RSVPStats, RSVPStatusUpdate, RSVPSubmitted
from eventrsvp.services import admission_service, event_service, export_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/events/{event_id}/rsvps", response_model=RSVPSubmitted, status_code=status.HTTP_201_CREATED)
def submit_rsvp(event_id: str, payload: RSVPCreate, db: Session = Depends(get_db)):
    """Public, no account needed. One response per email per event."""
    rsvp, aggregate = admission_service.submit_rsvp(
        db=db,
        event_id=event_id,
        name=payload.name,
        email=payload.email,
        status=payload.status,
    )
    return {"rsvp": rsvp, "capacity": aggregate.as_dict()}


@router.get("/events/{event_id}/rsvps", response_model=list[RSVPOut])
def list_rsvps(
    event_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Matches name or email"),
    db: Session = Depends(get_db),
):
    return event_service.list_event_rsvps(db, event_id, requester_id, status_filter, search)


@router.get("/events/{event_id}/rsvps/stats", response_model=RSVPStats)
def rsvp_stats(
    event_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    return event_service.rsvp_stats(db, event_id, requester_id)


@router.get("/events/{event_id}/rsvps/attending-emails", response_model=AttendingEmails)
def attending_emails(
    event_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    emails = event_service.attending_emails(db, event_id, requester_id)
    return {"count": len(emails), "emails": ", ".join(emails)}


@router.get("/events/{event_id}/rsvps/export.csv")
def export_rsvps(
    event_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    locale: str = Query(settings.EXPORT_LOCALE),
    db: Session = Depends(get_db),
):
    """Download the (filtered) response list as CSV."""
    event = event_service.get_owned_event(db, event_id, requester_id)
    rsvps = event_service.list_event_rsvps(db, event_id, requester_id, status_filter, search)
    content = export_service.export_rsvps_csv(rsvps, locale=locale)
    filename = export_service.export_filename(event.title)
    logger.info("Exported %d responses of event %s", len(rsvps), event_id)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/rsvps/{rsvp_id}", response_model=RSVPOut)
def update_rsvp_status(
    rsvp_id: str,
    payload: RSVPStatusUpdate,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    """Organizer override; not capacity-checked."""
    return admission_service.update_rsvp_status(db, rsvp_id, requester_id, payload.status)


@router.delete("/rsvps/{rsvp_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rsvp(
    rsvp_id: str,
    requester_id: str = Query(..., description="Identity of the signed-in organizer"),
    db: Session = Depends(get_db),
):
    admission_service.delete_rsvp(db, rsvp_id, requester_id)
