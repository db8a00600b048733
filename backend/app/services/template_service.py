from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, tzinfo
from typing import Iterable

from app.core.exceptions import ConflictError, InvalidTemplateError, ScopeMismatchError
from app.models.timetable_event import EventType
from app.services.conflict_service import (
    SEVERITY_BY_TYPE,
    Conflict,
    ConflictReport,
    ConflictType,
    ProposedSlot,
    check_conflicts,
    conflict_to_dict,
    normalize_room,
)
from app.services.intervals import (
    Interval,
    TimeWindow,
    combine_date_and_time_of_day,
    day_of_week_of,
    local_date,
    overlaps,
    validate_time_window,
)
from app.services.timetable_types import ScheduledEvent, SemesterPlan, WeeklyTemplate

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class TemplateDraft:
    batch_id: str
    subject_id: str
    teacher_id: str
    day_of_week: int
    time_window: TimeWindow
    event_type: EventType = EventType.lecture
    room: str | None = None
    building: str | None = None
    color: str = "#3B82F6"


@dataclass
class TemplateProposal:
    template: WeeklyTemplate
    report: ConflictReport
    warnings: list[str] = field(default_factory=list)


def _window_on(day: date, window: TimeWindow, tz: tzinfo) -> Interval:
    return Interval(
        start=combine_date_and_time_of_day(day, window.start, tz),
        end=combine_date_and_time_of_day(day, window.end, tz),
    )


def _validate_draft(draft: TemplateDraft, plan: SemesterPlan) -> None:
    if not 0 <= draft.day_of_week <= 6:
        raise InvalidTemplateError(
            "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
            details={"day_of_week": draft.day_of_week},
        )
    validate_time_window(draft.time_window)
    if draft.batch_id != plan.batch_id:
        raise ScopeMismatchError(
            "Template batch does not match the semester plan batch",
            details={"template_batch_id": draft.batch_id, "plan_batch_id": plan.batch_id},
        )
    if draft.day_of_week not in plan.working_days:
        raise InvalidTemplateError(
            f"{DAY_NAMES[draft.day_of_week]} is not a working day for this semester plan",
            details={"day_of_week": draft.day_of_week, "working_days": sorted(plan.working_days)},
        )


def _conflicts_with_events(
    draft: TemplateDraft,
    plan: SemesterPlan,
    events: Iterable[ScheduledEvent],
    tz: tzinfo,
) -> ConflictReport:
    # Templates carry no date, so each materialised event on the same weekday
    # is compared against the template window placed on that event's date.
    by_date: dict[date, list[ScheduledEvent]] = defaultdict(list)
    for event in events:
        day = local_date(event.interval.start, tz)
        if day_of_week_of(day) == draft.day_of_week and plan.date_range.contains(day):
            by_date[day].append(event)

    report = ConflictReport()
    for day in sorted(by_date):
        proposed = ProposedSlot(
            batch_id=draft.batch_id,
            teacher_id=draft.teacher_id,
            room=draft.room,
            interval=_window_on(day, draft.time_window, tz),
        )
        report.extend(check_conflicts(proposed, by_date[day]))
    return report


def _conflicts_with_templates(
    draft: TemplateDraft,
    plan: SemesterPlan,
    templates: Iterable[WeeklyTemplate],
    tz: tzinfo,
) -> ConflictReport:
    reference_day = plan.date_range.start
    proposed_window = _window_on(reference_day, draft.time_window, tz)
    room = normalize_room(draft.room)
    day_name = DAY_NAMES[draft.day_of_week]

    report = ConflictReport()
    for template in templates:
        if not template.is_active or template.day_of_week != draft.day_of_week:
            continue
        if not overlaps(proposed_window, _window_on(reference_day, template.time_window, tz)):
            continue
        slot = f"subject {template.subject_id} on {day_name} ({template.time_window.start:%H:%M}-{template.time_window.end:%H:%M})"
        matches = [
            (template.teacher_id == draft.teacher_id, ConflictType.teacher_double_booking, f"Teacher conflict with {slot}"),
            (template.batch_id == draft.batch_id, ConflictType.batch_overlap, f"Batch time overlap with {slot}"),
            (
                room is not None and normalize_room(template.room) == room,
                ConflictType.room_conflict,
                f"Room {room} is already used by {slot}",
            ),
        ]
        for matched, conflict_type, message in matches:
            if matched:
                report.conflicts.append(
                    Conflict(
                        type=conflict_type,
                        severity=SEVERITY_BY_TYPE[conflict_type],
                        message=message,
                        conflicting_template=template,
                    )
                )
    return report


def propose_template(
    draft: TemplateDraft,
    plan: SemesterPlan,
    *,
    existing_events: Iterable[ScheduledEvent],
    existing_templates: Iterable[WeeklyTemplate],
    tz: tzinfo,
) -> TemplateProposal:
    """Validate a weekly slot for a semester plan and return it ready to persist.

    Raises ``ConflictError`` when the slot double-books a teacher or the batch,
    either against events already generated on that weekday or against other
    active templates of the same plan. Room clashes and slots outside the
    plan's daily window come back as warnings on the proposal.
    """
    _validate_draft(draft, plan)

    report = _conflicts_with_events(draft, plan, existing_events, tz)
    report.extend(
        _conflicts_with_templates(
            draft,
            plan,
            (template for template in existing_templates if template.semester_plan_id == plan.id),
            tz,
        )
    )
    if report.blocking:
        logger.warning(
            "Rejected template for batch %s on day %s: %d critical conflict(s)",
            draft.batch_id,
            draft.day_of_week,
            report.critical_conflicts,
        )
        raise ConflictError(
            "Template conflicts with existing schedule",
            conflicts=[conflict_to_dict(conflict) for conflict in report.conflicts],
        )

    warnings: list[str] = []
    daily = plan.daily_time_window
    if draft.time_window.start < daily.start or draft.time_window.end > daily.end:
        warnings.append(
            f"Slot {draft.time_window.start:%H:%M}-{draft.time_window.end:%H:%M} falls outside "
            f"the plan's daily window {daily.start:%H:%M}-{daily.end:%H:%M}"
        )

    template = WeeklyTemplate(
        id=str(uuid.uuid4()),
        semester_plan_id=plan.id,
        batch_id=draft.batch_id,
        subject_id=draft.subject_id,
        teacher_id=draft.teacher_id,
        day_of_week=draft.day_of_week,
        time_window=draft.time_window,
        event_type=draft.event_type,
        room=normalize_room(draft.room),
        building=normalize_room(draft.building),
        color=draft.color,
        is_active=True,
    )
    return TemplateProposal(template=template, report=report, warnings=warnings)


def deactivate_template(template: WeeklyTemplate) -> WeeklyTemplate:
    """Retire a template; events it already generated stay as they are."""
    return replace(template, is_active=False)
