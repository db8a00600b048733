import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from app.api.deps import get_actor_id, get_scheduler
from app.core.config import Settings, get_settings
from app.schemas.conflict import ConflictOut, EventWriteResponse
from app.schemas.timetable import (
    EventCreate,
    EventListResponse,
    EventOut,
    EventUpdate,
    GenerateEventsRequest,
    GenerateEventsResponse,
    WeekViewOut,
)
from app.core.exceptions import InvalidIntervalError
from app.models.timetable_event import EventStatus
from app.services.ical_export import export_ical
from app.services.intervals import (
    Interval,
    combine_date_and_time_of_day,
    ensure_aware,
    local_date,
    local_day_interval,
    week_bounds,
)
from app.services.scheduling import EventDraft, TimetableScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


def _start_bounds(
    scheduler: TimetableScheduler, start_date: date | None, end_date: date | None
) -> tuple[datetime | None, datetime | None]:
    if start_date and end_date and end_date < start_date:
        raise InvalidIntervalError("end_date must be on or after start_date")
    starts_from = combine_date_and_time_of_day(start_date, time.min, scheduler.tz) if start_date else None
    starts_before = (
        combine_date_and_time_of_day(end_date + timedelta(days=1), time.min, scheduler.tz) if end_date else None
    )
    return starts_from, starts_before


@router.get("/events", response_model=EventListResponse)
def list_events(
    batch_id: str | None = Query(default=None, max_length=36),
    teacher_id: str | None = Query(default=None, max_length=36),
    room: str | None = Query(default=None, max_length=100),
    start_date: date | None = None,
    end_date: date | None = None,
    include_inactive: bool = False,
    scheduler: TimetableScheduler = Depends(get_scheduler),
) -> EventListResponse:
    starts_from, starts_before = _start_bounds(scheduler, start_date, end_date)
    events = scheduler.store.list_events(
        batch_id=batch_id,
        teacher_id=teacher_id,
        room=room,
        starts_from=starts_from,
        starts_before=starts_before,
        include_inactive=include_inactive,
    )
    return EventListResponse(events=[EventOut.from_event(event) for event in events])


@router.get("/events/week", response_model=WeekViewOut)
def week_view(
    batch_id: str = Query(min_length=1, max_length=36),
    week_of: date | None = None,
    scheduler: TimetableScheduler = Depends(get_scheduler),
) -> WeekViewOut:
    week = week_bounds(week_of or local_date(scheduler.clock(), scheduler.tz))
    span = local_day_interval(week, scheduler.tz)
    events = scheduler.store.list_events(batch_id=batch_id, starts_from=span.start, starts_before=span.end)
    days: dict[str, list[EventOut]] = defaultdict(list)
    for event in events:
        days[local_date(event.interval.start, scheduler.tz).isoformat()].append(EventOut.from_event(event))
    return WeekViewOut(week_start=week.start, week_end=week.end, days=dict(days))


@router.get("/events/export.ics")
def export_events(
    batch_id: str = Query(min_length=1, max_length=36),
    start_date: date | None = None,
    end_date: date | None = None,
    calendar_name: str | None = Query(default=None, max_length=200),
    scheduler: TimetableScheduler = Depends(get_scheduler),
    settings: Settings = Depends(get_settings),
) -> Response:
    starts_from, starts_before = _start_bounds(scheduler, start_date, end_date)
    events = scheduler.store.list_events(batch_id=batch_id, starts_from=starts_from, starts_before=starts_before)
    body = export_ical(
        events,
        calendar_name=calendar_name or batch_id,
        product_id=settings.ical_product_id,
        timezone_name=settings.timetable_timezone,
    )
    return Response(
        content=body,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="timetable-{batch_id}.ics"'},
    )


@router.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: str, scheduler: TimetableScheduler = Depends(get_scheduler)) -> EventOut:
    return EventOut.from_event(scheduler.store.get_event(event_id))


@router.post("/events", response_model=EventWriteResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> EventWriteResponse:
    draft = EventDraft(
        batch_id=payload.batch_id,
        subject_id=payload.subject_id,
        teacher_id=payload.teacher_id,
        interval=Interval(
            start=ensure_aware(payload.start_time, scheduler.tz),
            end=ensure_aware(payload.end_time, scheduler.tz),
        ),
        event_type=payload.event_type,
        semester=payload.semester,
        room=payload.room,
        notes=payload.notes,
    )
    event, report = scheduler.create_event(draft, actor_id=actor_id)
    return EventWriteResponse(
        event=EventOut.from_event(event),
        conflicts=[ConflictOut.from_conflict(conflict) for conflict in report.conflicts],
    )


@router.patch("/events/{event_id}", response_model=EventWriteResponse)
def update_event(
    event_id: str,
    payload: EventUpdate,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> EventWriteResponse:
    data = payload.model_dump(exclude_unset=True)
    new_status = data.pop("status", None)
    for key in ("start_time", "end_time"):
        if data.get(key) is not None:
            data[key] = ensure_aware(data[key], scheduler.tz)

    conflicts: list[ConflictOut] = []
    event = None
    if data:
        event, report = scheduler.update_event(event_id, data, status=new_status, actor_id=actor_id)
        conflicts = [ConflictOut.from_conflict(conflict) for conflict in report.conflicts]
    elif new_status is not None:
        event = scheduler.change_status(event_id, new_status, actor_id=actor_id)
    if event is None:
        event = scheduler.store.get_event(event_id)
    return EventWriteResponse(event=EventOut.from_event(event), conflicts=conflicts)


@router.delete("/events/{event_id}")
def cancel_event(
    event_id: str,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> dict:
    # Soft delete: the row stays for history, it just leaves conflict scans.
    scheduler.change_status(event_id, EventStatus.cancelled, actor_id=actor_id)
    return {"success": True}


@router.post("/generate", response_model=GenerateEventsResponse)
def generate_template_events(
    payload: GenerateEventsRequest,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> GenerateEventsResponse:
    result = scheduler.materialize_template(
        payload.template_id,
        replace_existing=payload.replace_existing,
        actor_id=actor_id,
    )
    return GenerateEventsResponse(
        template_id=result.template_id,
        generated_count=result.generated_count,
        cancelled_count=result.cancelled_count,
    )
