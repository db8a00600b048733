from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.core.config import Settings
from app.core.exceptions import ConflictError, InvalidStatusTransitionError, PersistenceError, ScopeMismatchError
from app.models.timetable_event import EventStatus, EventType
from app.services.audit import log_activity
from app.services.conflict_service import ConflictReport, ProposedSlot, check_conflicts, conflict_to_dict, normalize_room
from app.services.event_store import EventFilter, SqlAlchemyEventStore
from app.services.intervals import (
    Interval,
    get_timezone,
    local_date,
    local_day_interval,
    validate_event_duration,
)
from app.services.recurrence import generate_events
from app.services.template_service import TemplateDraft, TemplateProposal, deactivate_template, propose_template
from app.services.timetable_types import CalendarScope, ScheduledEvent, WeeklyTemplate

logger = logging.getLogger(__name__)

ALLOWED_STATUS_TRANSITIONS = {
    EventStatus.active: {EventStatus.completed, EventStatus.cancelled},
    EventStatus.completed: set(),
    EventStatus.cancelled: set(),
}

EDITABLE_EVENT_FIELDS = {"subject_id", "teacher_id", "room", "event_type", "semester", "notes"}


@dataclass(frozen=True)
class EventDraft:
    batch_id: str
    subject_id: str
    teacher_id: str
    interval: Interval
    event_type: EventType = EventType.lecture
    semester: int = 1
    room: str | None = None
    notes: str | None = None


@dataclass
class GenerationResult:
    template_id: str
    generated_count: int
    cancelled_count: int = 0


@dataclass
class PlanGenerationResult:
    plan_id: str
    templates: list[GenerationResult] = field(default_factory=list)

    @property
    def generated_count(self) -> int:
        return sum(item.generated_count for item in self.templates)

    @property
    def cancelled_count(self) -> int:
        return sum(item.cancelled_count for item in self.templates)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimetableScheduler:
    """Runs the engine against the event store inside one transaction per operation.

    Each write follows the same discipline: lock the scope keys it touches,
    read the scoped events, run the pure engine code, write, commit. A
    ``PersistenceError`` leaves nothing behind because the store rolls back.
    """

    def __init__(
        self,
        store: SqlAlchemyEventStore,
        settings: Settings,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.settings = settings
        self.tz = get_timezone(settings.timetable_timezone)
        self.clock = clock

    def _scope_keys(self, slot: ProposedSlot) -> list[str]:
        keys: list[str] = []
        day = local_date(slot.interval.start, self.tz)
        last = local_date(slot.interval.end, self.tz)
        while day <= last:
            keys.append(f"teacher:{slot.teacher_id}:{day.isoformat()}")
            keys.append(f"batch:{slot.batch_id}:{day.isoformat()}")
            room = normalize_room(slot.room)
            if room is not None:
                keys.append(f"room:{room}:{day.isoformat()}")
            day += timedelta(days=1)
        return keys

    def _audit(self, action: str, entity_type: str, entity_id: str, actor_id: str | None, details: dict | None = None) -> None:
        log_activity(
            self.store.db,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )

    def validate_scope(self, *, subject_id: str, batch_id: str, teacher_id: str) -> None:
        if not self.settings.enforce_subject_teacher_scope:
            return
        assigned = self.store.assigned_teacher(subject_id, batch_id)
        if assigned is not None and assigned != teacher_id:
            raise ScopeMismatchError(
                "Teacher is not assigned to this subject for the batch",
                details={"subject_id": subject_id, "batch_id": batch_id, "teacher_id": teacher_id},
            )

    def check(self, slot: ProposedSlot, *, subject_id: str | None = None) -> ConflictReport:
        if subject_id:
            self.validate_scope(subject_id=subject_id, batch_id=slot.batch_id, teacher_id=slot.teacher_id)
        existing = self.store.fetch_active_events(
            EventFilter(
                teacher_id=slot.teacher_id,
                batch_id=slot.batch_id,
                room=normalize_room(slot.room),
                window=slot.interval,
            )
        )
        return check_conflicts(slot, existing)

    def _reject_if_blocking(self, report: ConflictReport, message: str) -> None:
        if report.blocking:
            logger.warning("%s: %d critical conflict(s)", message, report.critical_conflicts)
            raise ConflictError(message, conflicts=[conflict_to_dict(conflict) for conflict in report.conflicts])

    def create_event(self, draft: EventDraft, *, actor_id: str | None = None) -> tuple[ScheduledEvent, ConflictReport]:
        validate_event_duration(
            draft.interval,
            min_minutes=self.settings.min_event_minutes,
            max_minutes=self.settings.max_event_minutes,
        )
        slot = ProposedSlot(
            batch_id=draft.batch_id,
            teacher_id=draft.teacher_id,
            room=draft.room,
            interval=draft.interval,
        )
        self.store.lock_scopes(self._scope_keys(slot))
        report = self.check(slot, subject_id=draft.subject_id)
        self._reject_if_blocking(report, "Event conflicts with existing schedule")

        event = ScheduledEvent(
            id=str(uuid.uuid4()),
            batch_id=draft.batch_id,
            subject_id=draft.subject_id,
            teacher_id=draft.teacher_id,
            interval=draft.interval,
            event_type=draft.event_type,
            semester=draft.semester,
            room=normalize_room(draft.room),
            status=EventStatus.active,
            notes=draft.notes,
        )
        self.store.insert_events([event])
        self._audit(
            "event.create",
            "timetable_event",
            event.id,
            actor_id,
            {"batch_id": event.batch_id, "warnings": len(report.warnings)},
        )
        self.store.commit()
        return event, report

    def update_event(
        self,
        event_id: str,
        changes: dict,
        *,
        status: EventStatus | None = None,
        actor_id: str | None = None,
    ) -> tuple[ScheduledEvent, ConflictReport]:
        """Apply field edits and an optional status change as one commit."""
        current = self.store.get_event(event_id)
        if not current.is_active:
            raise InvalidStatusTransitionError(
                f"Only active events can be edited; this event is {current.status.value}",
                details={"event_id": event_id},
            )
        if status is not None:
            self._check_transition(current, status)

        interval = Interval(
            start=changes.get("start_time") or current.interval.start,
            end=changes.get("end_time") or current.interval.end,
        )
        fields = {key: value for key, value in changes.items() if key in EDITABLE_EVENT_FIELDS}
        if "room" in fields:
            fields["room"] = normalize_room(fields["room"])
        updated = replace(current, interval=interval, **fields)

        validate_event_duration(
            updated.interval,
            min_minutes=self.settings.min_event_minutes,
            max_minutes=self.settings.max_event_minutes,
        )
        slot = ProposedSlot(
            batch_id=updated.batch_id,
            teacher_id=updated.teacher_id,
            room=updated.room,
            interval=updated.interval,
            exclude_event_id=event_id,
        )
        self.store.lock_scopes(self._scope_keys(slot))
        report = self.check(slot, subject_id=updated.subject_id)
        self._reject_if_blocking(report, "Edited event conflicts with existing schedule")

        saved = self.store.update_event(updated)
        self._audit("event.update", "timetable_event", event_id, actor_id, {"fields": sorted(changes)})
        if status is not None and status != saved.status:
            saved = self._apply_status(saved, status, actor_id)
        self.store.commit()
        if status is not None and status != current.status:
            logger.info("Event %s moved from %s to %s", event_id, current.status.value, status.value)
        return saved, report

    def _check_transition(self, current: ScheduledEvent, status: EventStatus) -> None:
        if current.status != status and status not in ALLOWED_STATUS_TRANSITIONS[current.status]:
            raise InvalidStatusTransitionError(
                f"Cannot change event status from {current.status.value} to {status.value}",
                details={"event_id": current.id},
            )

    def _apply_status(self, current: ScheduledEvent, status: EventStatus, actor_id: str | None) -> ScheduledEvent:
        saved = self.store.set_event_status(current.id, status)
        self._audit(
            f"event.{status.value}",
            "timetable_event",
            current.id,
            actor_id,
            {"from": current.status.value, "to": status.value},
        )
        return saved

    def change_status(self, event_id: str, status: EventStatus, *, actor_id: str | None = None) -> ScheduledEvent:
        current = self.store.get_event(event_id)
        self._check_transition(current, status)
        if current.status == status:
            return current
        saved = self._apply_status(current, status, actor_id)
        self.store.commit()
        logger.info("Event %s moved from %s to %s", event_id, current.status.value, status.value)
        return saved

    def propose_template(
        self,
        plan_id: str,
        draft: TemplateDraft,
        *,
        actor_id: str | None = None,
    ) -> TemplateProposal:
        plan = self.store.get_plan(plan_id)
        self.validate_scope(subject_id=draft.subject_id, batch_id=draft.batch_id, teacher_id=draft.teacher_id)
        self.store.lock_scopes(
            [
                f"template:{plan.id}:{draft.day_of_week}",
                f"teacher:{draft.teacher_id}:dow{draft.day_of_week}",
            ]
        )
        existing_events = self.store.fetch_active_events(
            EventFilter(
                teacher_id=draft.teacher_id,
                batch_id=draft.batch_id,
                room=normalize_room(draft.room),
                day_of_week=draft.day_of_week,
                window=local_day_interval(plan.date_range, self.tz),
            )
        )
        proposal = propose_template(
            draft,
            plan,
            existing_events=existing_events,
            existing_templates=self.store.list_templates(plan.id),
            tz=self.tz,
        )
        saved = self.store.save_template(proposal.template, semester=plan.semester)
        self._audit(
            "template.create",
            "timetable_template",
            saved.id,
            actor_id,
            {"plan_id": plan.id, "day_of_week": saved.day_of_week, "warnings": proposal.warnings},
        )
        self.store.commit()
        return TemplateProposal(template=saved, report=proposal.report, warnings=proposal.warnings)

    def deactivate_template(self, template_id: str, *, actor_id: str | None = None) -> WeeklyTemplate:
        template = self.store.get_template(template_id)
        if not template.is_active:
            return template
        saved = self.store.save_template(deactivate_template(template))
        self._audit("template.deactivate", "timetable_template", template_id, actor_id)
        self.store.commit()
        return saved

    def materialize_template(
        self,
        template_id: str,
        *,
        replace_existing: bool | None = None,
        actor_id: str | None = None,
    ) -> GenerationResult:
        """Generate and store every dated occurrence of one template.

        With ``replace_existing`` the template's active generated events from
        now onward are cancelled in the same transaction first, so running it
        again does not double-book the batch. Past occurrences already on the
        timetable are kept and not generated a second time.
        """
        template = self.store.get_template(template_id)
        plan = self.store.get_plan(template.semester_plan_id)
        exceptions = self.store.fetch_exceptions(
            CalendarScope(
                school_id=plan.school_id,
                batch_id=template.batch_id,
                academic_year_id=plan.academic_year_id,
            )
        )
        events = generate_events(
            template,
            plan,
            exceptions,
            tz=self.tz,
            max_span_days=self.settings.max_semester_days,
        )
        if replace_existing is None:
            replace_existing = self.settings.regenerate_replaces_existing

        try:
            cancelled = 0
            if replace_existing:
                since = self.clock()
                kept = {
                    event.interval.start
                    for event in self.store.list_events(batch_id=template.batch_id, starts_before=since)
                    if event.source_template_id == template.id
                }
                events = [event for event in events if event.interval.start >= since or event.interval.start not in kept]
                cancelled = self.store.cancel_generated_events(template.id, since=since)
            self.store.insert_events(events)
            self._audit(
                "template.generate",
                "timetable_template",
                template.id,
                actor_id,
                {"generated": len(events), "cancelled": cancelled},
            )
            self.store.commit()
        except PersistenceError:
            logger.exception("Generation for template %s failed; no events were stored", template.id)
            raise

        logger.info(
            "Generated %d event(s) for template %s (cancelled %d previous)",
            len(events),
            template.id,
            cancelled,
        )
        return GenerationResult(template_id=template.id, generated_count=len(events), cancelled_count=cancelled)

    def materialize_plan(
        self,
        plan_id: str,
        *,
        replace_existing: bool | None = None,
        actor_id: str | None = None,
    ) -> PlanGenerationResult:
        plan = self.store.get_plan(plan_id)
        result = PlanGenerationResult(plan_id=plan.id)
        for template in self.store.list_templates(plan.id):
            result.templates.append(
                self.materialize_template(template.id, replace_existing=replace_existing, actor_id=actor_id)
            )
        return result
