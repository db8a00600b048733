from __future__ import annotations

from datetime import time

from pydantic import BaseModel, Field

from app.models.timetable_event import EventType
from app.services.timetable_types import WeeklyTemplate

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class TemplateCreate(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    room: str | None = Field(default=None, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    event_type: EventType = EventType.lecture
    color: str = Field(default="#3B82F6", pattern=COLOR_PATTERN)


class TemplateOut(BaseModel):
    id: str
    semester_plan_id: str
    batch_id: str
    subject_id: str
    teacher_id: str
    day_of_week: int
    start_time: time
    end_time: time
    room: str | None = None
    building: str | None = None
    event_type: EventType
    color: str
    is_active: bool

    @classmethod
    def from_template(cls, template: WeeklyTemplate) -> "TemplateOut":
        return cls(
            id=template.id,
            semester_plan_id=template.semester_plan_id,
            batch_id=template.batch_id,
            subject_id=template.subject_id,
            teacher_id=template.teacher_id,
            day_of_week=template.day_of_week,
            start_time=template.time_window.start,
            end_time=template.time_window.end,
            room=template.room,
            building=template.building,
            event_type=template.event_type,
            color=template.color,
            is_active=template.is_active,
        )
