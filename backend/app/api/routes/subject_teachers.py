from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_actor_id, get_db
from app.models.subject_teacher import SubjectTeacherAssignment
from app.schemas.subject_teacher import SubjectTeacherOut, SubjectTeacherUpsert
from app.services.audit import log_activity

router = APIRouter()


@router.get("/subject-teachers", response_model=list[SubjectTeacherOut])
def list_subject_teachers(
    batch_id: str | None = Query(default=None, max_length=36),
    teacher_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
) -> list[SubjectTeacherOut]:
    query = select(SubjectTeacherAssignment)
    if batch_id:
        query = query.where(SubjectTeacherAssignment.batch_id == batch_id)
    if teacher_id:
        query = query.where(SubjectTeacherAssignment.teacher_id == teacher_id)
    return list(db.execute(query).scalars())


@router.put("/subject-teachers", response_model=SubjectTeacherOut)
def upsert_subject_teacher(
    payload: SubjectTeacherUpsert,
    db: Session = Depends(get_db),
    actor_id: str | None = Depends(get_actor_id),
) -> SubjectTeacherOut:
    assignment = db.execute(
        select(SubjectTeacherAssignment).where(
            SubjectTeacherAssignment.subject_id == payload.subject_id,
            SubjectTeacherAssignment.batch_id == payload.batch_id,
        )
    ).scalar_one_or_none()
    previous = None
    if assignment is None:
        assignment = SubjectTeacherAssignment(**payload.model_dump())
        db.add(assignment)
    else:
        previous = assignment.teacher_id
        assignment.teacher_id = payload.teacher_id
    db.flush()
    log_activity(
        db,
        actor_id=actor_id,
        action="subject_teacher.assign",
        entity_type="subject_teacher",
        entity_id=assignment.id,
        details={"teacher_id": payload.teacher_id, "previous_teacher_id": previous},
    )
    db.commit()
    db.refresh(assignment)
    return assignment
