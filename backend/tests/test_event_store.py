from dataclasses import replace
from datetime import date, datetime, time, timezone

import pytest

from app.core.exceptions import PersistenceError, ResourceNotFoundError
from app.models.semester_plan import SemesterPlan as SemesterPlanRow
from app.models.subject_teacher import SubjectTeacherAssignment
from app.models.timetable_event import EventStatus
from app.models.timetable_exception import TimetableException
from app.services.event_store import EventFilter, SqlAlchemyEventStore
from app.services.intervals import Interval, TimeWindow
from app.services.timetable_types import CalendarScope, ScheduledEvent, WeeklyTemplate


def _at(day: int, hour: int) -> datetime:
    return datetime(2024, 1, day, hour, tzinfo=timezone.utc)


def _event(event_id, *, day=8, start=9, end=10, teacher="t1", batch="b1", room=None, template=None):
    return ScheduledEvent(
        id=event_id,
        batch_id=batch,
        subject_id="math",
        teacher_id=teacher,
        interval=Interval(_at(day, start), _at(day, end)),
        room=room,
        source_template_id=template,
    )


@pytest.fixture
def store(db_session):
    return SqlAlchemyEventStore(db_session, tz=timezone.utc)


def test_inserted_events_round_trip_as_aware_utc(store):
    store.insert_events([_event("e1", room="R101")])
    store.commit()

    loaded = store.get_event("e1")
    assert loaded.interval.start == _at(8, 9)
    assert loaded.interval.start.tzinfo is not None
    assert loaded.room == "R101"
    assert loaded.status == EventStatus.active


def test_scope_keys_are_alternatives(store):
    store.insert_events(
        [
            _event("teacher-match", teacher="t1", batch="b9"),
            _event("batch-match", teacher="t9", batch="b1"),
            _event("room-match", teacher="t8", batch="b8", room="R101"),
            _event("unrelated", teacher="t7", batch="b7", room="R999"),
        ]
    )

    found = store.fetch_active_events(EventFilter(teacher_id="t1", batch_id="b1", room="R101"))
    assert {event.id for event in found} == {"teacher-match", "batch-match", "room-match"}


def test_window_filter_uses_overlap(store):
    store.insert_events(
        [
            _event("before", start=8, end=9),
            _event("inside", start=9, end=10),
            _event("straddles", start=10, end=12),
            _event("after", start=12, end=13),
        ]
    )

    found = store.fetch_active_events(EventFilter(teacher_id="t1", window=Interval(_at(8, 9), _at(8, 11))))
    assert [event.id for event in found] == ["inside", "straddles"]


def test_day_of_week_filter(store):
    # 2024-01-08 is a Monday, 2024-01-09 a Tuesday
    store.insert_events([_event("monday", day=8), _event("tuesday", day=9)])
    found = store.fetch_active_events(EventFilter(teacher_id="t1", day_of_week=1))
    assert [event.id for event in found] == ["monday"]


def test_cancelled_events_are_not_active(store):
    store.insert_events([_event("e1")])
    store.set_event_status("e1", EventStatus.cancelled)
    store.commit()

    assert store.fetch_active_events(EventFilter(teacher_id="t1")) == []
    assert [event.id for event in store.list_events(teacher_id="t1", include_inactive=True)] == ["e1"]


def test_list_events_start_bounds(store):
    store.insert_events([_event("d8", day=8), _event("d9", day=9), _event("d10", day=10)])

    found = store.list_events(batch_id="b1", starts_from=_at(9, 0), starts_before=_at(10, 0))
    assert [event.id for event in found] == ["d9"]


def test_cancel_generated_events_only_touches_future_rows_of_that_template(store):
    store.insert_events(
        [
            _event("past", day=1, template="tpl-1"),
            _event("future", day=15, template="tpl-1"),
            _event("other-template", day=15, batch="b2", teacher="t2", template="tpl-2"),
            _event("one-off", day=15, batch="b3", teacher="t3"),
        ]
    )

    cancelled = store.cancel_generated_events("tpl-1", since=_at(8, 0))
    store.commit()

    assert cancelled == 1
    assert store.get_event("future").status == EventStatus.cancelled
    assert store.get_event("past").status == EventStatus.active
    assert store.get_event("other-template").status == EventStatus.active


def test_fetch_exceptions_matches_populated_scope_fields(store, db_session):
    db_session.add_all(
        [
            TimetableException(id="global", title="New Year", start_date=date(2024, 1, 1), end_date=date(2024, 1, 1)),
            TimetableException(
                id="school", title="Founders", start_date=date(2024, 1, 2), end_date=date(2024, 1, 2), school_id="s1"
            ),
            TimetableException(
                id="batch", title="Trip", start_date=date(2024, 1, 3), end_date=date(2024, 1, 3), batch_id="b2"
            ),
        ]
    )
    db_session.commit()

    found = store.fetch_exceptions(CalendarScope(school_id="s1", batch_id="b1", academic_year_id="ay1"))
    assert [item.id for item in found] == ["global", "school"]
    unscoped = store.fetch_exceptions(CalendarScope())
    assert [item.id for item in unscoped] == ["global"]


def test_templates_and_plans(store, db_session):
    plan = SemesterPlanRow(
        batch_id="b1",
        academic_year_id="ay1",
        semester=2,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 5, 31),
        working_days=[1, 2, 3, 4, 5],
    )
    db_session.add(plan)
    db_session.commit()

    loaded_plan = store.get_plan(plan.id)
    assert loaded_plan.working_days == frozenset({1, 2, 3, 4, 5})
    assert loaded_plan.daily_time_window == TimeWindow(time(9, 30), time(16, 15))

    template = WeeklyTemplate(
        id="tpl-1",
        semester_plan_id=plan.id,
        batch_id="b1",
        subject_id="math",
        teacher_id="t1",
        day_of_week=1,
        time_window=TimeWindow(time(10), time(11)),
    )
    store.save_template(template, semester=2)
    store.commit()
    assert [item.id for item in store.list_templates(plan.id)] == ["tpl-1"]

    store.save_template(replace(template, is_active=False))
    store.commit()
    assert store.list_templates(plan.id) == []
    assert [item.id for item in store.list_templates(plan.id, active_only=False)] == ["tpl-1"]


def test_assigned_teacher(store, db_session):
    db_session.add(SubjectTeacherAssignment(subject_id="math", batch_id="b1", teacher_id="t1"))
    db_session.commit()

    assert store.assigned_teacher("math", "b1") == "t1"
    assert store.assigned_teacher("math", "b2") is None


def test_missing_rows_raise_not_found(store):
    with pytest.raises(ResourceNotFoundError):
        store.get_event("missing")
    with pytest.raises(ResourceNotFoundError):
        store.get_plan("missing")
    with pytest.raises(ResourceNotFoundError):
        store.get_template("missing")


def test_failed_write_raises_persistence_error_and_rolls_back(store):
    store.insert_events([_event("e1")])
    store.commit()

    with pytest.raises(PersistenceError) as excinfo:
        store.insert_events([_event("e1", day=9), _event("e2", day=9)])

    assert excinfo.value.status_code == 503
    assert excinfo.value.details == {}

    assert [event.id for event in store.list_events()] == ["e1"]
    assert store.get_event("e1").interval.start == _at(8, 9)
