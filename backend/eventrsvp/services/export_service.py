"""CSV export of an event's responses for the organizer."""
import csv
import io
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from eventrsvp.errors import ValidationError
from eventrsvp.models.rsvp import RSVP, RSVPStatus

HEADERS = {
    "en": ["Name", "Email", "Status", "Created at"],
    "bg": ["Име", "Email", "Статус", "Дата на създаване"],
}

STATUS_LABELS = {
    "en": {
        RSVPStatus.attending: "Attending",
        RSVPStatus.maybe: "Maybe",
        RSVPStatus.declined: "Declined",
    },
    "bg": {
        RSVPStatus.attending: "Присъства",
        RSVPStatus.maybe: "Може би",
        RSVPStatus.declined: "Отказал",
    },
}

DATE_FORMATS = {
    "en": "%Y-%m-%d %H:%M:%S",
    "bg": "%d.%m.%Y, %H:%M:%S",
}

# Excel needs the BOM to open UTF-8 (Cyrillic) correctly
BOM = "\ufeff"


def _format_created_at(value: Optional[datetime], locale: str) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(DATE_FORMATS[locale])


def export_rsvps_csv(rsvps: Iterable[RSVP], locale: str = "bg") -> str:
    """Render responses as CSV: Name, Email, Status (localized), CreatedAt."""
    if locale not in HEADERS:
        raise ValidationError(f"unsupported locale '{locale}'")
    labels = STATUS_LABELS[locale]

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(HEADERS[locale])
    for rsvp in rsvps:
        writer.writerow([
            rsvp.name,
            rsvp.email,
            labels[RSVPStatus(rsvp.status)],
            _format_created_at(rsvp.created_at, locale),
        ])
    return BOM + buffer.getvalue()


def export_filename(event_title: str, today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    safe_title = re.sub(r"[^A-Za-z0-9\-]+", "_", event_title).strip("_") or "event"
    return f"rsvps_{safe_title}_{today.date().isoformat()}.csv"
