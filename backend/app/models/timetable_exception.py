import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class ExceptionType(str, Enum):
    holiday = "holiday"
    exam_period = "exam_period"
    break_ = "break"
    special_event = "special_event"
    other = "other"


class TimetableException(Base):
    __tablename__ = "timetable_exceptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    exception_type: Mapped[ExceptionType] = mapped_column(
        SAEnum(ExceptionType, name="timetable_exception_type", values_callable=lambda items: [i.value for i in items]),
        nullable=False,
        default=ExceptionType.holiday,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    school_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    academic_year_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
