from __future__ import annotations

import logging

from sqlalchemy import inspect, text

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "semester_plans": {"id", "batch_id", "academic_year_id", "school_id", "start_date", "end_date", "working_days"},
    "timetable_templates": {"id", "semester_plan_id", "batch_id", "day_of_week", "start_time", "end_time", "is_active"},
    "timetable_events": {
        "id",
        "batch_id",
        "teacher_id",
        "start_time",
        "end_time",
        "room",
        "status",
        "source_template_id",
    },
    "timetable_exceptions": {"id", "start_date", "end_date", "school_id", "batch_id", "academic_year_id"},
    "subject_teachers": {"id", "subject_id", "batch_id", "teacher_id"},
    "activity_logs": {"id", "actor_id", "action"},
}


def _ensure_event_source_template_column() -> None:
    # Events created before template generation existed have no source link.
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_events" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("timetable_events")}
        if "source_template_id" in column_names:
            return
        connection.execute(text("ALTER TABLE timetable_events ADD COLUMN source_template_id VARCHAR(36)"))
        connection.execute(
            text("CREATE INDEX IF NOT EXISTS ix_timetable_events_source_template_id ON timetable_events (source_template_id)")
        )


def _ensure_template_display_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_templates" not in set(inspector.get_table_names()):
            return
        column_names = {item["name"] for item in inspector.get_columns("timetable_templates")}
        if "building" not in column_names:
            connection.execute(text("ALTER TABLE timetable_templates ADD COLUMN building VARCHAR(200)"))
        if "color" not in column_names:
            connection.execute(
                text("ALTER TABLE timetable_templates ADD COLUMN color VARCHAR(20) NOT NULL DEFAULT '#3B82F6'")
            )


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        # Ensure missing tables are present before additive compatibility patches.
        Base.metadata.create_all(bind=engine)
        _ensure_event_source_template_column()
        _ensure_template_display_columns()
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
