from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator

from app.models.timetable_exception import ExceptionType


class ExceptionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    exception_type: ExceptionType = ExceptionType.holiday
    start_date: date
    end_date: date
    school_id: str | None = Field(default=None, max_length=36)
    batch_id: str | None = Field(default=None, max_length=36)
    academic_year_id: str | None = Field(default=None, max_length=36)

    @model_validator(mode="after")
    def validate_date_order(self) -> "ExceptionCreate":
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class ExceptionOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    exception_type: ExceptionType
    start_date: date
    end_date: date
    school_id: str | None = None
    batch_id: str | None = None
    academic_year_id: str | None = None

    model_config = {"from_attributes": True}
