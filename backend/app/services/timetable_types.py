from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import time

from app.models.semester_plan import DEFAULT_WORKING_DAYS
from app.models.timetable_event import EventStatus, EventType
from app.models.timetable_exception import ExceptionType
from app.services.intervals import DateRange, Interval, TimeWindow


@dataclass(frozen=True)
class ScheduledEvent:
    id: str
    batch_id: str
    subject_id: str
    teacher_id: str
    interval: Interval
    event_type: EventType = EventType.lecture
    semester: int = 1
    room: str | None = None
    status: EventStatus = EventStatus.active
    source_template_id: str | None = None
    notes: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.active

    def with_status(self, status: EventStatus) -> "ScheduledEvent":
        return replace(self, status=status)


@dataclass(frozen=True)
class WeeklyTemplate:
    id: str
    semester_plan_id: str
    batch_id: str
    subject_id: str
    teacher_id: str
    day_of_week: int
    time_window: TimeWindow
    event_type: EventType = EventType.lecture
    room: str | None = None
    building: str | None = None
    color: str = "#3B82F6"
    is_active: bool = True


@dataclass(frozen=True)
class SemesterPlan:
    id: str
    batch_id: str
    academic_year_id: str
    semester: int
    date_range: DateRange
    school_id: str | None = None
    working_days: frozenset[int] = field(default_factory=lambda: frozenset(DEFAULT_WORKING_DAYS))
    daily_time_window: TimeWindow = TimeWindow(start=time(9, 30), end=time(16, 15))


@dataclass(frozen=True)
class CalendarScope:
    school_id: str | None = None
    batch_id: str | None = None
    academic_year_id: str | None = None


@dataclass(frozen=True)
class ExceptionRange:
    id: str
    date_range: DateRange
    exception_type: ExceptionType = ExceptionType.holiday
    title: str = ""
    school_id: str | None = None
    batch_id: str | None = None
    academic_year_id: str | None = None

    def matches_scope(self, scope: CalendarScope) -> bool:
        return (
            (self.school_id is None or self.school_id == scope.school_id)
            and (self.batch_id is None or self.batch_id == scope.batch_id)
            and (self.academic_year_id is None or self.academic_year_id == scope.academic_year_id)
        )
