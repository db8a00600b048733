from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.semester_plan import DEFAULT_WORKING_DAYS


class SemesterPlanCreate(BaseModel):
    batch_id: str = Field(min_length=1, max_length=36)
    academic_year_id: str = Field(min_length=1, max_length=36)
    school_id: str | None = Field(default=None, max_length=36)
    program_id: str | None = Field(default=None, max_length=36)
    semester: int = Field(ge=1, le=20)
    start_date: date
    end_date: date
    working_days: list[int] = Field(default_factory=lambda: list(DEFAULT_WORKING_DAYS), max_length=7)
    daily_start_time: time = time(9, 30)
    daily_end_time: time = time(16, 15)
    total_teaching_weeks: int | None = Field(default=None, ge=1, le=104)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, value: list[int]) -> list[int]:
        invalid = [day for day in value if not 0 <= day <= 6]
        if invalid:
            raise ValueError(f"Invalid working day(s): {invalid}")
        return sorted(set(value))

    @model_validator(mode="after")
    def validate_daily_window(self) -> "SemesterPlanCreate":
        if self.daily_end_time <= self.daily_start_time:
            raise ValueError("daily_end_time must be after daily_start_time")
        return self


class SemesterPlanOut(BaseModel):
    id: str
    batch_id: str
    academic_year_id: str
    school_id: str | None = None
    program_id: str | None = None
    semester: int
    start_date: date
    end_date: date
    working_days: list[int]
    daily_start_time: time
    daily_end_time: time
    total_teaching_weeks: int | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}
