from datetime import date, datetime, time, timezone

import pytest

from app.core.exceptions import ConflictError, InvalidIntervalError, InvalidTemplateError, ScopeMismatchError
from app.services.conflict_service import ConflictSeverity, ConflictType
from app.services.intervals import DateRange, Interval, TimeWindow
from app.services.template_service import TemplateDraft, deactivate_template, propose_template
from app.services.timetable_types import ScheduledEvent, SemesterPlan, WeeklyTemplate

PLAN = SemesterPlan(
    id="plan-1",
    batch_id="b1",
    academic_year_id="ay1",
    semester=1,
    date_range=DateRange(date(2024, 1, 1), date(2024, 3, 31)),
)


def _draft(**overrides):
    values = dict(
        batch_id="b1",
        subject_id="math",
        teacher_id="t1",
        day_of_week=1,
        time_window=TimeWindow(time(10), time(11)),
        room="R101",
    )
    values.update(overrides)
    return TemplateDraft(**values)


def _event(event_id, day, *, teacher="t1", batch="b1", room=None, start=10, end=11):
    return ScheduledEvent(
        id=event_id,
        batch_id=batch,
        subject_id="physics",
        teacher_id=teacher,
        interval=Interval(
            datetime(day.year, day.month, day.day, start, tzinfo=timezone.utc),
            datetime(day.year, day.month, day.day, end, tzinfo=timezone.utc),
        ),
        room=room,
    )


def _template(template_id, *, day_of_week=1, teacher="t1", start=10, end=11, active=True, plan_id="plan-1"):
    return WeeklyTemplate(
        id=template_id,
        semester_plan_id=plan_id,
        batch_id="b1",
        subject_id="physics",
        teacher_id=teacher,
        day_of_week=day_of_week,
        time_window=TimeWindow(time(start), time(end)),
        is_active=active,
    )


def _propose(draft, events=(), templates=()):
    return propose_template(draft, PLAN, existing_events=events, existing_templates=templates, tz=timezone.utc)


def test_clean_proposal_returns_new_active_template():
    proposal = _propose(_draft(room=" R101 "))

    template = proposal.template
    assert template.id
    assert template.semester_plan_id == "plan-1"
    assert template.is_active
    assert template.room == "R101"
    assert not proposal.report.has_conflicts
    assert proposal.warnings == []


def test_day_of_week_must_be_in_range():
    with pytest.raises(InvalidTemplateError):
        _propose(_draft(day_of_week=7))


def test_non_working_day_is_rejected():
    with pytest.raises(InvalidTemplateError, match="Sunday is not a working day"):
        _propose(_draft(day_of_week=0))


def test_time_window_must_move_forward():
    with pytest.raises(InvalidIntervalError):
        _propose(_draft(time_window=TimeWindow(time(11), time(10))))


def test_batch_must_match_plan():
    with pytest.raises(ScopeMismatchError):
        _propose(_draft(batch_id="b2"))


def test_teacher_busy_on_a_matching_weekday_blocks_the_template():
    # 2024-01-08 is a Monday
    busy = _event("e1", date(2024, 1, 8), batch="b9", start=10, end=12)

    with pytest.raises(ConflictError) as excinfo:
        _propose(_draft(), events=[busy])

    assert excinfo.value.status_code == 409
    conflicts = excinfo.value.details["conflicts"]
    assert conflicts[0]["type"] == "teacher_double_booking"
    assert conflicts[0]["conflicting_event_id"] == "e1"


def test_events_on_other_weekdays_or_outside_the_plan_are_ignored():
    events = [
        _event("tuesday", date(2024, 1, 9)),
        _event("after-plan", date(2024, 4, 1)),
        _event("other-slot", date(2024, 1, 8), start=14, end=15),
    ]
    assert not _propose(_draft(), events=events).report.has_conflicts


def test_shared_room_is_reported_but_accepted():
    other_class = _event("e1", date(2024, 1, 15), teacher="t9", batch="b9", room="R101")

    proposal = _propose(_draft(), events=[other_class])

    assert proposal.report.has_conflicts
    assert not proposal.report.blocking
    assert proposal.report.conflicts[0].type == ConflictType.room_conflict
    assert proposal.report.conflicts[0].severity == ConflictSeverity.warning


def test_overlapping_template_of_the_same_plan_blocks():
    existing = _template("tpl-1", teacher="t9", start=10, end=12)

    with pytest.raises(ConflictError) as excinfo:
        _propose(_draft(), templates=[existing])

    types = {item["type"] for item in excinfo.value.details["conflicts"]}
    assert types == {"batch_overlap"}
    assert excinfo.value.details["conflicts"][0]["conflicting_template_id"] == "tpl-1"


def test_non_overlapping_inactive_or_foreign_templates_do_not_block():
    templates = [
        _template("tuesday", day_of_week=2),
        _template("later", start=11, end=12),
        _template("retired", active=False),
        _template("other-plan", plan_id="plan-2"),
    ]
    assert not _propose(_draft(), templates=templates).report.has_conflicts


def test_slot_outside_the_daily_window_is_a_warning():
    proposal = _propose(_draft(time_window=TimeWindow(time(8), time(9))))
    assert len(proposal.warnings) == 1
    assert "outside the plan's daily window 09:30-16:15" in proposal.warnings[0]


def test_deactivate_template_keeps_everything_else():
    template = _template("tpl-1")
    retired = deactivate_template(template)
    assert not retired.is_active
    assert retired.id == template.id
    assert template.is_active
