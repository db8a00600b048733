from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.template import TemplateOut
from app.schemas.timetable import EventOut
from app.services.conflict_service import Conflict, ConflictReport, ConflictSeverity, ConflictType


class ConflictCheckRequest(BaseModel):
    batch_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    room: str | None = Field(default=None, max_length=100)
    start_time: datetime
    end_time: datetime
    exclude_event_id: str | None = None
    subject_id: str | None = Field(default=None, max_length=36)


class ConflictOut(BaseModel):
    type: ConflictType
    severity: ConflictSeverity
    message: str
    conflictingWith: EventOut | None = None
    conflictingTemplate: TemplateOut | None = None

    @classmethod
    def from_conflict(cls, conflict: Conflict) -> "ConflictOut":
        return cls(
            type=conflict.type,
            severity=conflict.severity,
            message=conflict.message,
            conflictingWith=EventOut.from_event(conflict.conflicting_with) if conflict.conflicting_with else None,
            conflictingTemplate=(
                TemplateOut.from_template(conflict.conflicting_template) if conflict.conflicting_template else None
            ),
        )


class ConflictCheckResponse(BaseModel):
    conflicts: list[ConflictOut]
    hasConflicts: bool
    criticalConflicts: int

    @classmethod
    def from_report(cls, report: ConflictReport) -> "ConflictCheckResponse":
        return cls(
            conflicts=[ConflictOut.from_conflict(conflict) for conflict in report.conflicts],
            hasConflicts=report.has_conflicts,
            criticalConflicts=report.critical_conflicts,
        )


class EventWriteResponse(BaseModel):
    event: EventOut
    conflicts: list[ConflictOut] = Field(default_factory=list)


class TemplateProposalOut(BaseModel):
    template: TemplateOut
    conflicts: list[ConflictOut] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
