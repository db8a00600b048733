"""iCalendar export for dated timetable events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from icalendar import Calendar, Event

from app.services.timetable_types import ScheduledEvent

UID_DOMAIN = "school-ms.local"


def build_calendar(
    events: Iterable[ScheduledEvent],
    *,
    calendar_name: str,
    product_id: str,
    timezone_name: str = "UTC",
) -> Calendar:
    """Build a calendar with one VEVENT per scheduled event.

    Event UIDs are derived from the event id so re-importing an updated
    export replaces entries instead of duplicating them.
    """
    calendar = Calendar()
    calendar.add("prodid", product_id)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    calendar.add("x-wr-calname", f"{calendar_name} Timetable")
    calendar.add("x-wr-timezone", timezone_name)

    stamp = datetime.now(timezone.utc)
    for item in events:
        entry = Event()
        entry.add("uid", f"{item.id}@{UID_DOMAIN}")
        entry.add("dtstamp", stamp)
        entry.add("summary", f"{item.event_type.value.upper()} - {item.subject_id}")
        entry.add("dtstart", item.interval.start.astimezone(timezone.utc))
        entry.add("dtend", item.interval.end.astimezone(timezone.utc))
        entry.add("location", item.room or "TBD")
        entry.add("description", item.notes or "Class")
        entry.add("status", "CONFIRMED" if item.is_active else "CANCELLED")
        calendar.add_component(entry)
    return calendar


def export_ical(
    events: Iterable[ScheduledEvent],
    *,
    calendar_name: str,
    product_id: str,
    timezone_name: str = "UTC",
) -> bytes:
    return build_calendar(
        events,
        calendar_name=calendar_name,
        product_id=product_id,
        timezone_name=timezone_name,
    ).to_ical()
