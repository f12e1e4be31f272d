from eventrsvp.models.event import Event
from eventrsvp.models.rsvp import RSVP, RSVPStatus

__all__ = ["Event", "RSVP", "RSVPStatus"]
