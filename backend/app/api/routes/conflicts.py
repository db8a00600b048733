from fastapi import APIRouter, Depends

from app.api.deps import get_scheduler
from app.schemas.conflict import ConflictCheckRequest, ConflictCheckResponse
from app.services.conflict_service import ProposedSlot
from app.services.intervals import Interval, ensure_aware
from app.services.scheduling import TimetableScheduler

router = APIRouter()


@router.post("/check-conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    payload: ConflictCheckRequest,
    scheduler: TimetableScheduler = Depends(get_scheduler),
) -> ConflictCheckResponse:
    # Conflicts are returned as data; the caller decides whether to block.
    slot = ProposedSlot(
        batch_id=payload.batch_id,
        teacher_id=payload.teacher_id,
        room=payload.room,
        interval=Interval(
            start=ensure_aware(payload.start_time, scheduler.tz),
            end=ensure_aware(payload.end_time, scheduler.tz),
        ),
        exclude_event_id=payload.exclude_event_id,
    )
    report = scheduler.check(slot, subject_id=payload.subject_id)
    return ConflictCheckResponse.from_report(report)
