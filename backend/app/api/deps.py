from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db.session import SessionLocal
from app.services.event_store import SqlAlchemyEventStore
from app.services.intervals import get_timezone
from app.services.scheduling import TimetableScheduler


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor_id(x_actor_id: str | None = Header(default=None, max_length=36)) -> str | None:
    # Authentication lives in front of this service; the gateway forwards the acting user's id.
    return x_actor_id


def get_event_store(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SqlAlchemyEventStore:
    return SqlAlchemyEventStore(db, tz=get_timezone(settings.timetable_timezone))


def get_scheduler(
    store: SqlAlchemyEventStore = Depends(get_event_store),
    settings: Settings = Depends(get_settings),
) -> TimetableScheduler:
    return TimetableScheduler(store, settings)
