from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog


def log_activity(
    db: Session,
    *,
    actor_id: str | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)


def recent_activity(db: Session, *, entity_type: str | None = None, limit: int = 50) -> list[ActivityLog]:
    query = select(ActivityLog).order_by(ActivityLog.created_at.desc()).limit(limit)
    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
    return list(db.execute(query).scalars())
