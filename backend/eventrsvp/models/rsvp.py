"""RSVP ORM model: one public response to an event."""
import uuid
from datetime import datetime, timezone
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventrsvp.database import Base


class RSVPStatus(str, enum.Enum):
    attending = "attending"
    maybe = "maybe"
    declined = "declined"


class RSVP(Base):
    __tablename__ = "rsvps"
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_rsvps_event_email"),
    )

    rsvp_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(
        String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=False)  # stored trimmed + lower-cased
    status = Column(SAEnum(RSVPStatus), nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), server_default=func.now()
    )

    event = relationship("Event", back_populates="rsvps")
