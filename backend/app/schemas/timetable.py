from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from app.models.timetable_event import EventStatus, EventType
from app.services.timetable_types import ScheduledEvent

REQUIRED_EVENT_FIELDS = {"subject_id", "teacher_id", "start_time", "end_time", "event_type", "semester", "status"}


class EventCreate(BaseModel):
    batch_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    start_time: datetime
    end_time: datetime
    room: str | None = Field(default=None, max_length=100)
    event_type: EventType = EventType.lecture
    semester: int = Field(default=1, ge=1, le=20)
    notes: str | None = Field(default=None, max_length=2000)


class EventUpdate(BaseModel):
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    start_time: datetime | None = None
    end_time: datetime | None = None
    room: str | None = Field(default=None, max_length=100)
    event_type: EventType | None = None
    semester: int | None = Field(default=None, ge=1, le=20)
    notes: str | None = Field(default=None, max_length=2000)
    status: EventStatus | None = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "EventUpdate":
        cleared = sorted(
            name for name in self.model_fields_set & REQUIRED_EVENT_FIELDS if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class EventOut(BaseModel):
    id: str
    batch_id: str
    subject_id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime
    room: str | None = None
    event_type: EventType
    semester: int
    status: EventStatus
    source_template_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_event(cls, event: ScheduledEvent) -> "EventOut":
        return cls(
            id=event.id,
            batch_id=event.batch_id,
            subject_id=event.subject_id,
            teacher_id=event.teacher_id,
            start_time=event.interval.start,
            end_time=event.interval.end,
            room=event.room,
            event_type=event.event_type,
            semester=event.semester,
            status=event.status,
            source_template_id=event.source_template_id,
            notes=event.notes,
        )


class EventListResponse(BaseModel):
    events: list[EventOut]


class WeekViewOut(BaseModel):
    week_start: date
    week_end: date
    days: dict[str, list[EventOut]]


class GenerateEventsRequest(BaseModel):
    template_id: str = Field(min_length=1, max_length=36)
    replace_existing: bool | None = None


class GenerateEventsResponse(BaseModel):
    template_id: str
    generated_count: int
    cancelled_count: int = 0


class PlanGenerateRequest(BaseModel):
    replace_existing: bool | None = None


class PlanGenerateResponse(BaseModel):
    plan_id: str
    generated_count: int
    cancelled_count: int
    templates: list[GenerateEventsResponse]
