import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_actor_id, get_db, get_scheduler
from app.core.config import Settings, get_settings
from app.core.exceptions import InvalidIntervalError, ResourceNotFoundError
from app.models.semester_plan import SemesterPlan
from app.schemas.conflict import ConflictOut, TemplateProposalOut
from app.schemas.semester_plan import SemesterPlanCreate, SemesterPlanOut
from app.schemas.template import TemplateCreate, TemplateOut
from app.schemas.timetable import GenerateEventsResponse, PlanGenerateRequest, PlanGenerateResponse
from app.services.audit import log_activity
from app.services.intervals import DateRange, TimeWindow
from app.services.scheduling import TimetableScheduler
from app.services.template_service import TemplateDraft

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/semester-plans", response_model=list[SemesterPlanOut])
def list_semester_plans(
    batch_id: str | None = Query(default=None, max_length=36),
    academic_year_id: str | None = Query(default=None, max_length=36),
    db: Session = Depends(get_db),
) -> list[SemesterPlanOut]:
    query = select(SemesterPlan)
    if batch_id:
        query = query.where(SemesterPlan.batch_id == batch_id)
    if academic_year_id:
        query = query.where(SemesterPlan.academic_year_id == academic_year_id)
    return list(db.execute(query.order_by(SemesterPlan.start_date)).scalars())


@router.post("/semester-plans", response_model=SemesterPlanOut, status_code=status.HTTP_201_CREATED)
def create_semester_plan(
    payload: SemesterPlanCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    actor_id: str | None = Depends(get_actor_id),
) -> SemesterPlanOut:
    window = DateRange(start=payload.start_date, end=payload.end_date)
    if window.end <= window.start:
        raise InvalidIntervalError(
            "Semester end date must be after its start date",
            details={"start_date": window.start.isoformat(), "end_date": window.end.isoformat()},
        )
    if window.days > settings.max_semester_days:
        raise InvalidIntervalError(
            f"Semester plan spans {window.days} days; the maximum is {settings.max_semester_days}",
        )

    plan = SemesterPlan(**payload.model_dump())
    db.add(plan)
    db.flush()
    log_activity(
        db,
        actor_id=actor_id,
        action="semester_plan.create",
        entity_type="semester_plan",
        entity_id=plan.id,
        details={"batch_id": plan.batch_id, "semester": plan.semester},
    )
    db.commit()
    db.refresh(plan)
    logger.info("Created semester plan %s for batch %s", plan.id, plan.batch_id)
    return plan


@router.get("/semester-plans/{plan_id}", response_model=SemesterPlanOut)
def get_semester_plan(plan_id: str, db: Session = Depends(get_db)) -> SemesterPlanOut:
    plan = db.get(SemesterPlan, plan_id)
    if plan is None:
        raise ResourceNotFoundError("Semester plan", plan_id)
    return plan


@router.get("/semester-plans/{plan_id}/templates", response_model=list[TemplateOut])
def list_plan_templates(
    plan_id: str,
    include_inactive: bool = False,
    scheduler: TimetableScheduler = Depends(get_scheduler),
) -> list[TemplateOut]:
    plan = scheduler.store.get_plan(plan_id)
    templates = scheduler.store.list_templates(plan.id, active_only=not include_inactive)
    return [TemplateOut.from_template(template) for template in templates]


@router.post(
    "/semester-plans/{plan_id}/templates",
    response_model=TemplateProposalOut,
    status_code=status.HTTP_201_CREATED,
)
def create_plan_template(
    plan_id: str,
    payload: TemplateCreate,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> TemplateProposalOut:
    plan = scheduler.store.get_plan(plan_id)
    draft = TemplateDraft(
        batch_id=plan.batch_id,
        subject_id=payload.subject_id,
        teacher_id=payload.teacher_id,
        day_of_week=payload.day_of_week,
        time_window=TimeWindow(start=payload.start_time, end=payload.end_time),
        event_type=payload.event_type,
        room=payload.room,
        building=payload.building,
        color=payload.color,
    )
    proposal = scheduler.propose_template(plan.id, draft, actor_id=actor_id)
    return TemplateProposalOut(
        template=TemplateOut.from_template(proposal.template),
        conflicts=[ConflictOut.from_conflict(conflict) for conflict in proposal.report.conflicts],
        warnings=proposal.warnings,
    )


@router.delete("/templates/{template_id}", response_model=TemplateOut)
def deactivate_template(
    template_id: str,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> TemplateOut:
    return TemplateOut.from_template(scheduler.deactivate_template(template_id, actor_id=actor_id))


@router.post("/semester-plans/{plan_id}/generate", response_model=PlanGenerateResponse)
def generate_plan_events(
    plan_id: str,
    payload: PlanGenerateRequest | None = None,
    scheduler: TimetableScheduler = Depends(get_scheduler),
    actor_id: str | None = Depends(get_actor_id),
) -> PlanGenerateResponse:
    replace_existing = payload.replace_existing if payload is not None else None
    result = scheduler.materialize_plan(plan_id, replace_existing=replace_existing, actor_id=actor_id)
    return PlanGenerateResponse(
        plan_id=result.plan_id,
        generated_count=result.generated_count,
        cancelled_count=result.cancelled_count,
        templates=[
            GenerateEventsResponse(
                template_id=item.template_id,
                generated_count=item.generated_count,
                cancelled_count=item.cancelled_count,
            )
            for item in result.templates
        ],
    )
