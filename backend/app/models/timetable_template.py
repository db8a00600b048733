import uuid
from datetime import datetime, time

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.timetable_event import EventType


class TimetableTemplate(Base):
    __tablename__ = "timetable_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    semester_plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("semester_plans.id"), nullable=False, index=True
    )
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    event_type: Mapped[EventType] = mapped_column(
        SAEnum(EventType, name="timetable_event_type"),
        nullable=False,
        default=EventType.lecture,
    )
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3B82F6")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
