"""Event ORM model."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, String, Text, DateTime, Integer
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventrsvp.database import Base


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_events_capacity_non_negative"),
    )

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    location = Column(Text, nullable=False)
    capacity = Column(Integer, nullable=False, default=0)
    created_by = Column(Text, nullable=False, index=True)  # opaque organizer identity
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )

    rsvps = relationship("RSVP", back_populates="event", cascade="all, delete-orphan")
