from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_actor_id, get_db
from app.core.exceptions import ResourceNotFoundError
from app.models.timetable_exception import TimetableException
from app.schemas.calendar_exception import ExceptionCreate, ExceptionOut
from app.services.audit import log_activity

router = APIRouter()


@router.get("/exceptions", response_model=list[ExceptionOut])
def list_exceptions(
    school_id: str | None = Query(default=None, max_length=36),
    batch_id: str | None = Query(default=None, max_length=36),
    academic_year_id: str | None = Query(default=None, max_length=36),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
) -> list[ExceptionOut]:
    query = select(TimetableException)
    if school_id:
        query = query.where(TimetableException.school_id == school_id)
    if batch_id:
        query = query.where(TimetableException.batch_id == batch_id)
    if academic_year_id:
        query = query.where(TimetableException.academic_year_id == academic_year_id)
    # Ranges overlapping [start_date, end_date], both inclusive.
    if start_date:
        query = query.where(TimetableException.end_date >= start_date)
    if end_date:
        query = query.where(TimetableException.start_date <= end_date)
    return list(db.execute(query.order_by(TimetableException.start_date)).scalars())


@router.post("/exceptions", response_model=ExceptionOut, status_code=status.HTTP_201_CREATED)
def create_exception(
    payload: ExceptionCreate,
    db: Session = Depends(get_db),
    actor_id: str | None = Depends(get_actor_id),
) -> ExceptionOut:
    item = TimetableException(**payload.model_dump())
    db.add(item)
    db.flush()
    log_activity(
        db,
        actor_id=actor_id,
        action="exception.create",
        entity_type="timetable_exception",
        entity_id=item.id,
        details={
            "start_date": item.start_date.isoformat(),
            "end_date": item.end_date.isoformat(),
            "type": item.exception_type.value,
        },
    )
    db.commit()
    db.refresh(item)
    return item


@router.delete("/exceptions/{exception_id}")
def delete_exception(
    exception_id: str,
    db: Session = Depends(get_db),
    actor_id: str | None = Depends(get_actor_id),
) -> dict:
    item = db.get(TimetableException, exception_id)
    if item is None:
        raise ResourceNotFoundError("Timetable exception", exception_id)
    db.delete(item)
    log_activity(
        db,
        actor_id=actor_id,
        action="exception.delete",
        entity_type="timetable_exception",
        entity_id=exception_id,
    )
    db.commit()
    return {"success": True}
