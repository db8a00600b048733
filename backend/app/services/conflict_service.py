from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List

from app.services.intervals import Interval, duration, overlaps
from app.services.timetable_types import ScheduledEvent, WeeklyTemplate


class ConflictType(str, Enum):
    teacher_double_booking = "teacher_double_booking"
    batch_overlap = "batch_overlap"
    room_conflict = "room_conflict"


class ConflictSeverity(str, Enum):
    critical = "critical"
    warning = "warning"


# Teacher and batch clashes are physically impossible; a shared room is advisory.
SEVERITY_BY_TYPE = {
    ConflictType.teacher_double_booking: ConflictSeverity.critical,
    ConflictType.batch_overlap: ConflictSeverity.critical,
    ConflictType.room_conflict: ConflictSeverity.warning,
}


@dataclass(frozen=True)
class ProposedSlot:
    batch_id: str
    teacher_id: str
    interval: Interval
    room: str | None = None
    exclude_event_id: str | None = None


@dataclass(frozen=True)
class Conflict:
    type: ConflictType
    severity: ConflictSeverity
    message: str
    conflicting_with: ScheduledEvent | None = None
    conflicting_template: WeeklyTemplate | None = None


@dataclass
class ConflictReport:
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def critical_conflicts(self) -> int:
        return sum(1 for conflict in self.conflicts if conflict.severity == ConflictSeverity.critical)

    @property
    def blocking(self) -> bool:
        return self.critical_conflicts > 0

    @property
    def warnings(self) -> List[Conflict]:
        return [conflict for conflict in self.conflicts if conflict.severity == ConflictSeverity.warning]

    def extend(self, other: "ConflictReport") -> None:
        self.conflicts.extend(other.conflicts)


def normalize_room(room: str | None) -> str | None:
    cleaned = (room or "").strip()
    return cleaned or None


def _describe(event: ScheduledEvent) -> str:
    start = event.interval.start
    end = event.interval.end
    return f"subject {event.subject_id} ({start:%Y-%m-%d %H:%M}-{end:%H:%M})"


def _scan(
    proposed: ProposedSlot,
    candidates: list[ScheduledEvent],
    conflict_type: ConflictType,
    same_scope: Callable[[ScheduledEvent], bool],
    message: str,
    room: str | None = None,
) -> list[Conflict]:
    found: list[Conflict] = []
    for event in candidates:
        if same_scope(event) and overlaps(event.interval, proposed.interval):
            found.append(
                Conflict(
                    type=conflict_type,
                    severity=SEVERITY_BY_TYPE[conflict_type],
                    message=message.format(target=_describe(event), room=room),
                    conflicting_with=event,
                )
            )
    return found


def check_conflicts(proposed: ProposedSlot, existing: Iterable[ScheduledEvent]) -> ConflictReport:
    """Compare a proposed slot with existing events on the teacher, batch and room scopes.

    Only active events count, and the event named by ``exclude_event_id`` is
    skipped so an edited event never collides with its own previous version.
    Every matching event produces its own entry; an event that shares both the
    teacher and the room with the proposal is reported twice.
    """
    duration(proposed.interval)
    candidates = [
        event
        for event in existing
        if event.is_active and (proposed.exclude_event_id is None or event.id != proposed.exclude_event_id)
    ]

    report = ConflictReport()
    report.conflicts.extend(
        _scan(
            proposed,
            candidates,
            ConflictType.teacher_double_booking,
            lambda event: event.teacher_id == proposed.teacher_id,
            "Teacher is already scheduled for {target}",
        )
    )
    report.conflicts.extend(
        _scan(
            proposed,
            candidates,
            ConflictType.batch_overlap,
            lambda event: event.batch_id == proposed.batch_id,
            "Batch already has a scheduled class for {target}",
        )
    )
    room = normalize_room(proposed.room)
    if room is not None:
        report.conflicts.extend(
            _scan(
                proposed,
                candidates,
                ConflictType.room_conflict,
                lambda event: normalize_room(event.room) == room,
                "Room {room} is already booked for {target}",
                room=room,
            )
        )
    return report


def conflict_to_dict(conflict: Conflict) -> dict:
    payload = {
        "type": conflict.type.value,
        "severity": conflict.severity.value,
        "message": conflict.message,
    }
    if conflict.conflicting_with is not None:
        payload["conflicting_event_id"] = conflict.conflicting_with.id
    if conflict.conflicting_template is not None:
        payload["conflicting_template_id"] = conflict.conflicting_template.id
    return payload
