"""Typed outcomes raised by the services and rendered by the API layer.

Every error carries a stable ``code`` the client can switch on (to pick a
localized inline message) and the HTTP status it maps to.
"""
from fastapi import status


class RSVPServiceError(Exception):
    """Base class for all expected failures of an operation."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RSVPServiceError):
    """Malformed input; the caller can correct it and resubmit."""

    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "invalid input"


class DuplicateError(RSVPServiceError):
    """This email has already responded to this event."""

    code = "duplicate_rsvp"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already responded to this event"


class CapacityExceededError(RSVPServiceError):
    """No seats left for an attending response."""

    code = "capacity_exceeded"
    status_code = status.HTTP_409_CONFLICT
    default_message = "No seats left for this event"


class NotFoundError(RSVPServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ForbiddenError(RSVPServiceError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Only the event organizer may do this"


class StorageError(RSVPServiceError):
    """Backend I/O failure, not further classified."""

    code = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Something went wrong while saving. Please try again."


# Messages for fields that fail request parsing before a service sees them
FIELD_MESSAGES = {
    "name": "name required",
    "email": "invalid email",
    "status": "invalid status",
    "title": "title required",
    "location": "location required",
}


def from_request_errors(errors) -> ValidationError:
    """Collapse FastAPI's request validation errors into one typed outcome."""
    if not errors:
        return ValidationError()
    first = errors[0]
    loc = [part for part in first.get("loc", ()) if isinstance(part, str)]
    field = loc[-1] if loc else "body"
    if field in FIELD_MESSAGES:
        return ValidationError(FIELD_MESSAGES[field])
    if first.get("type") == "missing":
        return ValidationError(f"{field} required")
    return ValidationError(f"invalid {field}")
