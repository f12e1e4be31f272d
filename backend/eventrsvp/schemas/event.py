"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class EventCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: datetime
    location: Optional[str] = None
    capacity: int = 0


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    capacity: Optional[int] = None


class CapacityOut(BaseModel):
    event_id: str
    capacity: int
    attending_count: int
    remaining: int


class EventOut(BaseModel):
    """Public view of an event plus its live seat count."""

    event_id: str
    title: str
    description: Optional[str] = None
    date: datetime
    location: str
    capacity: int
    attending_count: int = 0
    remaining: int = 0


class OwnedEventOut(EventOut):
    created_by: str
    created_at: datetime


class EventPage(BaseModel):
    items: list[EventOut]
    total: int
    page: int
    page_size: int
