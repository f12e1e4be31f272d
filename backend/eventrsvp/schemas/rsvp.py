"""Pydantic schemas for RSVP responses."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from eventrsvp.schemas.event import CapacityOut


class RSVPCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    status: str = "attending"  # attending, maybe, declined


class RSVPStatusUpdate(BaseModel):
    status: str


class RSVPOut(BaseModel):
    rsvp_id: str
    event_id: str
    name: str
    email: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RSVPSubmitted(BaseModel):
    rsvp: RSVPOut
    capacity: CapacityOut


class RSVPStats(BaseModel):
    total: int
    attending: int
    maybe: int
    declined: int
    remaining: int


class AttendingEmails(BaseModel):
    count: int
    emails: str  # comma-separated, ready to paste into a mail client
