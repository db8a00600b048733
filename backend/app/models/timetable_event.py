import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.db.types import UTCDateTime


class EventType(str, Enum):
    lecture = "lecture"
    practical = "practical"
    lab = "lab"
    seminar = "seminar"
    tutorial = "tutorial"
    exam = "exam"
    other = "other"


class EventStatus(str, Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


class TimetableEvent(Base):
    __tablename__ = "timetable_events"
    __table_args__ = (
        Index("ix_timetable_events_teacher_window", "teacher_id", "start_time", "end_time"),
        Index("ix_timetable_events_batch_window", "batch_id", "start_time", "end_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    room: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    event_type: Mapped[EventType] = mapped_column(
        SAEnum(EventType, name="timetable_event_type"),
        nullable=False,
        default=EventType.lecture,
    )
    semester: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[EventStatus] = mapped_column(
        SAEnum(EventStatus, name="timetable_event_status"),
        nullable=False,
        default=EventStatus.active,
        index=True,
    )
    source_template_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
