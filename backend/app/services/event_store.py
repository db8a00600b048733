from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Iterable, Protocol

from sqlalchemy import or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PersistenceError, ResourceNotFoundError
from app.models.semester_plan import SemesterPlan as SemesterPlanRow
from app.models.subject_teacher import SubjectTeacherAssignment
from app.models.timetable_event import EventStatus, TimetableEvent
from app.models.timetable_exception import TimetableException
from app.models.timetable_template import TimetableTemplate
from app.services.intervals import DateRange, Interval, TimeWindow, day_of_week_of, local_date
from app.services.timetable_types import CalendarScope, ExceptionRange, ScheduledEvent, SemesterPlan, WeeklyTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventFilter:
    """Scoped read of active events.

    Populated scope keys (teacher, batch, room) are alternatives: an event
    matching any of them is returned. ``window`` keeps only events overlapping
    it and ``day_of_week`` only events starting on that local weekday.
    """

    teacher_id: str | None = None
    batch_id: str | None = None
    room: str | None = None
    day_of_week: int | None = None
    window: Interval | None = None


class ScheduledEventStore(Protocol):
    def fetch_active_events(self, event_filter: EventFilter) -> list[ScheduledEvent]: ...

    def fetch_exceptions(self, scope: CalendarScope) -> list[ExceptionRange]: ...

    def insert_events(self, events: list[ScheduledEvent]) -> None: ...

    def set_event_status(self, event_id: str, status: EventStatus) -> ScheduledEvent: ...


def to_scheduled_event(row: TimetableEvent) -> ScheduledEvent:
    return ScheduledEvent(
        id=row.id,
        batch_id=row.batch_id,
        subject_id=row.subject_id,
        teacher_id=row.teacher_id,
        interval=Interval(start=row.start_time, end=row.end_time),
        event_type=row.event_type,
        semester=row.semester,
        room=row.room,
        status=row.status,
        source_template_id=row.source_template_id,
        notes=row.notes,
    )


def to_event_row(event: ScheduledEvent) -> TimetableEvent:
    return TimetableEvent(
        id=event.id,
        batch_id=event.batch_id,
        subject_id=event.subject_id,
        teacher_id=event.teacher_id,
        start_time=event.interval.start,
        end_time=event.interval.end,
        event_type=event.event_type,
        semester=event.semester,
        room=event.room,
        status=event.status,
        source_template_id=event.source_template_id,
        notes=event.notes,
    )


def to_weekly_template(row: TimetableTemplate) -> WeeklyTemplate:
    return WeeklyTemplate(
        id=row.id,
        semester_plan_id=row.semester_plan_id,
        batch_id=row.batch_id,
        subject_id=row.subject_id,
        teacher_id=row.teacher_id,
        day_of_week=row.day_of_week,
        time_window=TimeWindow(start=row.start_time, end=row.end_time),
        event_type=row.event_type,
        room=row.room,
        building=row.building,
        color=row.color,
        is_active=row.is_active,
    )


def to_semester_plan(row: SemesterPlanRow) -> SemesterPlan:
    return SemesterPlan(
        id=row.id,
        batch_id=row.batch_id,
        academic_year_id=row.academic_year_id,
        school_id=row.school_id,
        semester=row.semester,
        date_range=DateRange(start=row.start_date, end=row.end_date),
        working_days=frozenset(row.working_days or []),
        daily_time_window=TimeWindow(start=row.daily_start_time, end=row.daily_end_time),
    )


def to_exception_range(row: TimetableException) -> ExceptionRange:
    return ExceptionRange(
        id=row.id,
        date_range=DateRange(start=row.start_date, end=row.end_date),
        exception_type=row.exception_type,
        title=row.title,
        school_id=row.school_id,
        batch_id=row.batch_id,
        academic_year_id=row.academic_year_id,
    )


class SqlAlchemyEventStore:
    def __init__(self, db: Session, *, tz: tzinfo):
        self.db = db
        self.tz = tz

    def _flush(self, action: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Event store failed to %s", action)
            raise PersistenceError(f"Failed to {action}") from exc

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Event store commit failed")
            raise PersistenceError("Failed to commit timetable changes") from exc

    def rollback(self) -> None:
        self.db.rollback()

    def lock_scopes(self, keys: Iterable[str]) -> None:
        # Transaction-scoped advisory locks serialise check-then-insert per scope key.
        if self.db.get_bind().dialect.name != "postgresql":
            return
        for key in sorted(set(keys)):
            self.db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})

    def fetch_active_events(self, event_filter: EventFilter) -> list[ScheduledEvent]:
        query = select(TimetableEvent).where(TimetableEvent.status == EventStatus.active)
        scope_clauses = []
        if event_filter.teacher_id:
            scope_clauses.append(TimetableEvent.teacher_id == event_filter.teacher_id)
        if event_filter.batch_id:
            scope_clauses.append(TimetableEvent.batch_id == event_filter.batch_id)
        if event_filter.room:
            scope_clauses.append(TimetableEvent.room == event_filter.room)
        if scope_clauses:
            query = query.where(or_(*scope_clauses))
        if event_filter.window is not None:
            query = query.where(
                TimetableEvent.start_time < event_filter.window.end,
                TimetableEvent.end_time > event_filter.window.start,
            )
        try:
            rows = self.db.execute(query.order_by(TimetableEvent.start_time)).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Event store failed to read timetable events")
            raise PersistenceError("Failed to read timetable events") from exc

        events = [to_scheduled_event(row) for row in rows]
        if event_filter.day_of_week is not None:
            events = [
                event
                for event in events
                if day_of_week_of(local_date(event.interval.start, self.tz)) == event_filter.day_of_week
            ]
        return events

    def list_events(
        self,
        *,
        batch_id: str | None = None,
        teacher_id: str | None = None,
        room: str | None = None,
        starts_from: datetime | None = None,
        starts_before: datetime | None = None,
        include_inactive: bool = False,
    ) -> list[ScheduledEvent]:
        query = select(TimetableEvent)
        if not include_inactive:
            query = query.where(TimetableEvent.status == EventStatus.active)
        if batch_id:
            query = query.where(TimetableEvent.batch_id == batch_id)
        if teacher_id:
            query = query.where(TimetableEvent.teacher_id == teacher_id)
        if room:
            query = query.where(TimetableEvent.room == room)
        if starts_from is not None:
            query = query.where(TimetableEvent.start_time >= starts_from)
        if starts_before is not None:
            query = query.where(TimetableEvent.start_time < starts_before)
        rows = self.db.execute(query.order_by(TimetableEvent.start_time)).scalars().all()
        return [to_scheduled_event(row) for row in rows]

    def get_event(self, event_id: str) -> ScheduledEvent:
        row = self.db.get(TimetableEvent, event_id)
        if row is None:
            raise ResourceNotFoundError("Timetable event", event_id)
        return to_scheduled_event(row)

    def fetch_exceptions(self, scope: CalendarScope) -> list[ExceptionRange]:
        query = select(TimetableException)
        for column, value in (
            (TimetableException.school_id, scope.school_id),
            (TimetableException.batch_id, scope.batch_id),
            (TimetableException.academic_year_id, scope.academic_year_id),
        ):
            if value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(or_(column.is_(None), column == value))
        try:
            rows = self.db.execute(query.order_by(TimetableException.start_date)).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Event store failed to read timetable exceptions")
            raise PersistenceError("Failed to read timetable exceptions") from exc
        return [to_exception_range(row) for row in rows]

    def insert_events(self, events: list[ScheduledEvent]) -> None:
        if not events:
            return
        self.db.add_all([to_event_row(event) for event in events])
        self._flush(f"insert {len(events)} timetable event(s)")

    def update_event(self, event: ScheduledEvent) -> ScheduledEvent:
        row = self.db.get(TimetableEvent, event.id)
        if row is None:
            raise ResourceNotFoundError("Timetable event", event.id)
        row.subject_id = event.subject_id
        row.teacher_id = event.teacher_id
        row.start_time = event.interval.start
        row.end_time = event.interval.end
        row.room = event.room
        row.event_type = event.event_type
        row.semester = event.semester
        row.notes = event.notes
        self._flush("update timetable event")
        return to_scheduled_event(row)

    def set_event_status(self, event_id: str, status: EventStatus) -> ScheduledEvent:
        row = self.db.get(TimetableEvent, event_id)
        if row is None:
            raise ResourceNotFoundError("Timetable event", event_id)
        row.status = status
        self._flush("update timetable event status")
        return to_scheduled_event(row)

    def cancel_generated_events(self, template_id: str, since: datetime) -> int:
        statement = (
            update(TimetableEvent)
            .where(
                TimetableEvent.source_template_id == template_id,
                TimetableEvent.status == EventStatus.active,
                TimetableEvent.start_time >= since,
            )
            .values(status=EventStatus.cancelled)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Event store failed to clear generated events")
            raise PersistenceError("Failed to clear generated events") from exc
        return result.rowcount or 0

    def get_plan(self, plan_id: str) -> SemesterPlan:
        row = self.db.get(SemesterPlanRow, plan_id)
        if row is None:
            raise ResourceNotFoundError("Semester plan", plan_id)
        return to_semester_plan(row)

    def get_template(self, template_id: str) -> WeeklyTemplate:
        row = self.db.get(TimetableTemplate, template_id)
        if row is None:
            raise ResourceNotFoundError("Timetable template", template_id)
        return to_weekly_template(row)

    def list_templates(self, plan_id: str, *, active_only: bool = True) -> list[WeeklyTemplate]:
        query = select(TimetableTemplate).where(TimetableTemplate.semester_plan_id == plan_id)
        if active_only:
            query = query.where(TimetableTemplate.is_active.is_(True))
        rows = self.db.execute(query.order_by(TimetableTemplate.day_of_week, TimetableTemplate.start_time)).scalars()
        return [to_weekly_template(row) for row in rows]

    def save_template(self, template: WeeklyTemplate, *, semester: int | None = None) -> WeeklyTemplate:
        row = self.db.get(TimetableTemplate, template.id)
        if row is None:
            row = TimetableTemplate(id=template.id)
            self.db.add(row)
        row.semester_plan_id = template.semester_plan_id
        row.batch_id = template.batch_id
        row.subject_id = template.subject_id
        row.teacher_id = template.teacher_id
        if semester is not None:
            row.semester = semester
        row.day_of_week = template.day_of_week
        row.start_time = template.time_window.start
        row.end_time = template.time_window.end
        row.room = template.room
        row.building = template.building
        row.event_type = template.event_type
        row.color = template.color
        row.is_active = template.is_active
        self._flush("save timetable template")
        return to_weekly_template(row)

    def assigned_teacher(self, subject_id: str, batch_id: str) -> str | None:
        return self.db.execute(
            select(SubjectTeacherAssignment.teacher_id).where(
                SubjectTeacherAssignment.subject_id == subject_id,
                SubjectTeacherAssignment.batch_id == batch_id,
            )
        ).scalar_one_or_none()
