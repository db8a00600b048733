from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta, tzinfo
from typing import Callable, Iterable

from app.core.exceptions import InvalidIntervalError, InvalidTemplateError, ScopeMismatchError
from app.models.timetable_event import EventStatus
from app.services.exception_calendar import ExceptionCalendar
from app.services.intervals import Interval, combine_date_and_time_of_day, first_matching_day, validate_time_window
from app.services.timetable_types import CalendarScope, ExceptionRange, ScheduledEvent, SemesterPlan, WeeklyTemplate

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)


def _new_event_id() -> str:
    return str(uuid.uuid4())


def _validate_inputs(template: WeeklyTemplate, plan: SemesterPlan, max_span_days: int | None) -> None:
    window = plan.date_range
    if window.start > window.end:
        raise InvalidIntervalError(
            "Semester plan end date must not be before its start date",
            details={"start_date": window.start.isoformat(), "end_date": window.end.isoformat()},
        )
    if max_span_days is not None and window.days > max_span_days:
        raise InvalidIntervalError(
            f"Semester plan spans {window.days} days; the maximum is {max_span_days}",
            details={"plan_id": plan.id},
        )
    if template.semester_plan_id != plan.id or template.batch_id != plan.batch_id:
        raise ScopeMismatchError(
            "Template does not belong to this semester plan",
            details={"template_id": template.id, "plan_id": plan.id},
        )
    if not template.is_active:
        raise InvalidTemplateError("Cannot generate events from an inactive template", details={"template_id": template.id})
    validate_time_window(template.time_window)


def occurrence_dates(template: WeeklyTemplate, plan: SemesterPlan) -> Iterable[date]:
    day = first_matching_day(plan.date_range.start, template.day_of_week)
    while day <= plan.date_range.end:
        yield day
        day += WEEK


def generate_events(
    template: WeeklyTemplate,
    plan: SemesterPlan,
    exceptions: Iterable[ExceptionRange],
    *,
    tz: tzinfo,
    max_span_days: int | None = None,
    id_factory: Callable[[], str] = _new_event_id,
) -> list[ScheduledEvent]:
    """Expand a weekly template into one dated event per matching day of the plan.

    Dates covered by an exception scoped to the plan's school, the template's
    batch or the plan's academic year are skipped. Nothing here looks at
    events generated earlier: running it twice yields two full sets, and
    callers that regenerate must clear the previous output themselves.
    """
    _validate_inputs(template, plan, max_span_days)

    scope = CalendarScope(
        school_id=plan.school_id,
        batch_id=template.batch_id,
        academic_year_id=plan.academic_year_id,
    )
    calendar = ExceptionCalendar(exceptions).for_scope(scope)

    events: list[ScheduledEvent] = []
    skipped = 0
    for day in occurrence_dates(template, plan):
        if calendar.is_excluded(day, scope):
            skipped += 1
            continue
        events.append(
            ScheduledEvent(
                id=id_factory(),
                batch_id=template.batch_id,
                subject_id=template.subject_id,
                teacher_id=template.teacher_id,
                interval=Interval(
                    start=combine_date_and_time_of_day(day, template.time_window.start, tz),
                    end=combine_date_and_time_of_day(day, template.time_window.end, tz),
                ),
                event_type=template.event_type,
                semester=plan.semester,
                room=template.room,
                status=EventStatus.active,
                source_template_id=template.id,
            )
        )

    logger.debug(
        "Expanded template %s over plan %s: %d event(s), %d date(s) skipped",
        template.id,
        plan.id,
        len(events),
        skipped,
    )
    return events
