from datetime import datetime, timezone

import pytest

from app.core.exceptions import InvalidIntervalError
from app.models.timetable_event import EventStatus
from app.services.conflict_service import (
    ConflictSeverity,
    ConflictType,
    ProposedSlot,
    check_conflicts,
    conflict_to_dict,
)
from app.services.intervals import Interval
from app.services.timetable_types import ScheduledEvent


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 8, hour, minute, tzinfo=timezone.utc)


def _event(event_id, *, teacher="t1", batch="b1", room=None, start=9, end=10, status=EventStatus.active):
    return ScheduledEvent(
        id=event_id,
        batch_id=batch,
        subject_id="math",
        teacher_id=teacher,
        interval=Interval(_at(start), _at(end)),
        room=room,
        status=status,
    )


def _slot(*, teacher="t1", batch="b1", room=None, start=9, end=10, exclude=None):
    return ProposedSlot(
        batch_id=batch,
        teacher_id=teacher,
        room=room,
        interval=Interval(_at(start), _at(end)),
        exclude_event_id=exclude,
    )


def test_teacher_double_booking_is_critical():
    report = check_conflicts(_slot(batch="b2"), [_event("e1")])

    assert report.has_conflicts
    assert len(report.conflicts) == 1
    conflict = report.conflicts[0]
    assert conflict.type == ConflictType.teacher_double_booking
    assert conflict.severity == ConflictSeverity.critical
    assert conflict.conflicting_with.id == "e1"
    assert "Teacher is already scheduled" in conflict.message
    assert report.blocking


def test_batch_overlap_is_critical():
    report = check_conflicts(_slot(teacher="t2"), [_event("e1")])

    assert [conflict.type for conflict in report.conflicts] == [ConflictType.batch_overlap]
    assert report.critical_conflicts == 1


def test_shared_room_is_only_a_warning():
    report = check_conflicts(_slot(teacher="t2", batch="b2", room="R101"), [_event("e1", room="R101")])

    assert [conflict.type for conflict in report.conflicts] == [ConflictType.room_conflict]
    assert report.conflicts[0].severity == ConflictSeverity.warning
    assert "Room R101" in report.conflicts[0].message
    assert report.has_conflicts
    assert not report.blocking
    assert report.critical_conflicts == 0
    assert len(report.warnings) == 1


def test_back_to_back_classes_do_not_conflict():
    existing = [_event("e1", start=9, end=10, room="R101")]
    report = check_conflicts(_slot(start=10, end=11, room="R101"), existing)
    assert not report.has_conflicts


def test_inactive_events_are_ignored():
    existing = [
        _event("cancelled", status=EventStatus.cancelled),
        _event("completed", status=EventStatus.completed),
    ]
    assert not check_conflicts(_slot(), existing).has_conflicts


def test_excluded_event_never_conflicts_with_itself():
    existing = [_event("e1", room="R101")]
    report = check_conflicts(_slot(start=9, end=11, room="R101", exclude="e1"), existing)
    assert not report.has_conflicts


def test_one_conflict_per_matching_scope_and_event():
    existing = [
        _event("e1", room="R101"),
        _event("e2", teacher="t1", batch="b9", start=9, end=11),
    ]
    report = check_conflicts(_slot(batch="b2", room="R101"), existing)

    kinds = [(conflict.type, conflict.conflicting_with.id) for conflict in report.conflicts]
    assert kinds == [
        (ConflictType.teacher_double_booking, "e1"),
        (ConflictType.teacher_double_booking, "e2"),
        (ConflictType.room_conflict, "e1"),
    ]
    assert report.critical_conflicts == 2


def test_room_names_are_trimmed_and_blank_rooms_skip_the_room_scan():
    existing = [_event("e1", teacher="t9", batch="b9", room=" R101 ")]

    assert check_conflicts(_slot(room="R101"), existing).conflicts[0].type == ConflictType.room_conflict
    assert not check_conflicts(_slot(room="   "), existing).has_conflicts
    assert not check_conflicts(_slot(room=None), [_event("e2", teacher="t9", batch="b9", room=None)]).has_conflicts


def test_invalid_proposal_interval_is_rejected():
    with pytest.raises(InvalidIntervalError):
        check_conflicts(_slot(start=10, end=10), [])


def test_conflict_to_dict_includes_conflicting_event():
    report = check_conflicts(_slot(), [_event("e1")])
    payload = conflict_to_dict(report.conflicts[0])

    assert payload["type"] == "teacher_double_booking"
    assert payload["severity"] == "critical"
    assert payload["conflicting_event_id"] == "e1"
    assert "conflicting_template_id" not in payload
