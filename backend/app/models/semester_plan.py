import uuid
from datetime import date, datetime, time

from sqlalchemy import JSON, Date, DateTime, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]


class SemesterPlan(Base):
    __tablename__ = "semester_plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    academic_year_id: Mapped[str] = mapped_column(String(36), nullable=False)
    school_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    program_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    working_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=lambda: list(DEFAULT_WORKING_DAYS))
    daily_start_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(9, 30))
    daily_end_time: Mapped[time] = mapped_column(Time, nullable=False, default=time(16, 15))
    total_teaching_weeks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
