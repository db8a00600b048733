from datetime import date, datetime, time, timezone
from itertools import count
from zoneinfo import ZoneInfo

import pytest

from app.core.exceptions import InvalidIntervalError, InvalidTemplateError, ScopeMismatchError
from app.models.timetable_event import EventStatus
from app.services.intervals import DateRange, TimeWindow
from app.services.recurrence import generate_events, occurrence_dates
from app.services.timetable_types import ExceptionRange, SemesterPlan, WeeklyTemplate


@pytest.fixture
def plan():
    return SemesterPlan(
        id="plan-1",
        batch_id="b1",
        academic_year_id="ay1",
        school_id="s1",
        semester=3,
        date_range=DateRange(date(2024, 1, 1), date(2024, 1, 31)),
    )


@pytest.fixture
def monday_template():
    return WeeklyTemplate(
        id="tpl-1",
        semester_plan_id="plan-1",
        batch_id="b1",
        subject_id="math",
        teacher_id="t1",
        day_of_week=1,
        time_window=TimeWindow(time(10), time(11)),
        room="R101",
    )


def _holiday(day, **scope):
    return ExceptionRange(id=f"h-{day.isoformat()}", date_range=DateRange(day, day), title="Holiday", **scope)


def test_monday_template_yields_every_monday_of_the_plan(plan, monday_template):
    events = generate_events(monday_template, plan, [], tz=timezone.utc)

    assert [event.interval.start.date() for event in events] == [
        date(2024, 1, 1),
        date(2024, 1, 8),
        date(2024, 1, 15),
        date(2024, 1, 22),
        date(2024, 1, 29),
    ]
    first = events[0]
    assert first.interval.start == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert first.interval.end == datetime(2024, 1, 1, 11, tzinfo=timezone.utc)
    assert all(event.status == EventStatus.active for event in events)
    assert all(event.source_template_id == "tpl-1" for event in events)
    assert all(event.semester == 3 for event in events)
    assert all(event.room == "R101" for event in events)
    assert len({event.id for event in events}) == 5


def test_plan_end_date_is_inclusive(plan, monday_template):
    short = SemesterPlan(
        id=plan.id,
        batch_id=plan.batch_id,
        academic_year_id=plan.academic_year_id,
        semester=plan.semester,
        date_range=DateRange(date(2024, 1, 2), date(2024, 1, 8)),
    )
    assert list(occurrence_dates(monday_template, short)) == [date(2024, 1, 8)]


def test_exception_dates_are_skipped(plan, monday_template):
    events = generate_events(monday_template, plan, [_holiday(date(2024, 1, 15))], tz=timezone.utc)

    days = [event.interval.start.date() for event in events]
    assert len(days) == 4
    assert date(2024, 1, 15) not in days


def test_exception_scoping_follows_plan_school_and_template_batch(plan, monday_template):
    exceptions = [
        _holiday(date(2024, 1, 8), school_id="s1"),
        _holiday(date(2024, 1, 15), school_id="s2"),
        _holiday(date(2024, 1, 22), batch_id="b2"),
        _holiday(date(2024, 1, 29), academic_year_id="ay1"),
    ]
    events = generate_events(monday_template, plan, exceptions, tz=timezone.utc)

    assert [event.interval.start.date() for event in events] == [
        date(2024, 1, 1),
        date(2024, 1, 15),
        date(2024, 1, 22),
    ]


def test_wall_clock_times_are_placed_in_the_timetable_zone(plan, monday_template):
    events = generate_events(monday_template, plan, [], tz=ZoneInfo("Asia/Kolkata"))
    assert events[0].interval.start.astimezone(timezone.utc) == datetime(2024, 1, 1, 4, 30, tzinfo=timezone.utc)


def test_running_twice_produces_a_second_full_set(plan, monday_template):
    first = generate_events(monday_template, plan, [], tz=timezone.utc)
    second = generate_events(monday_template, plan, [], tz=timezone.utc)

    assert len(first) == len(second) == 5
    assert [event.interval for event in first] == [event.interval for event in second]
    assert not {event.id for event in first} & {event.id for event in second}


def test_id_factory_is_used(plan, monday_template):
    ids = count(1)
    events = generate_events(monday_template, plan, [], tz=timezone.utc, id_factory=lambda: f"ev-{next(ids)}")
    assert [event.id for event in events] == ["ev-1", "ev-2", "ev-3", "ev-4", "ev-5"]


def test_reversed_plan_range_is_rejected(plan, monday_template):
    reversed_plan = SemesterPlan(
        id=plan.id,
        batch_id=plan.batch_id,
        academic_year_id=plan.academic_year_id,
        semester=plan.semester,
        date_range=DateRange(date(2024, 2, 1), date(2024, 1, 1)),
    )
    with pytest.raises(InvalidIntervalError):
        generate_events(monday_template, reversed_plan, [], tz=timezone.utc)


def test_over_long_plan_is_rejected(plan, monday_template):
    with pytest.raises(InvalidIntervalError, match="maximum is 20"):
        generate_events(monday_template, plan, [], tz=timezone.utc, max_span_days=20)


def test_template_from_another_plan_is_rejected(plan, monday_template):
    foreign = WeeklyTemplate(
        id="tpl-2",
        semester_plan_id="plan-2",
        batch_id="b1",
        subject_id="math",
        teacher_id="t1",
        day_of_week=1,
        time_window=TimeWindow(time(10), time(11)),
    )
    with pytest.raises(ScopeMismatchError):
        generate_events(foreign, plan, [], tz=timezone.utc)


def test_inactive_template_is_rejected(plan, monday_template):
    retired = WeeklyTemplate(
        id=monday_template.id,
        semester_plan_id=monday_template.semester_plan_id,
        batch_id=monday_template.batch_id,
        subject_id=monday_template.subject_id,
        teacher_id=monday_template.teacher_id,
        day_of_week=1,
        time_window=monday_template.time_window,
        is_active=False,
    )
    with pytest.raises(InvalidTemplateError):
        generate_events(retired, plan, [], tz=timezone.utc)
