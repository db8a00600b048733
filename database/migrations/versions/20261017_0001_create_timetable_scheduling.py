"""create timetable scheduling tables

Revision ID: 20261017_0001
Revises: None
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


event_type_enum = sa.Enum(
    "lecture", "practical", "lab", "seminar", "tutorial", "exam", "other", name="timetable_event_type"
)
event_status_enum = sa.Enum("active", "completed", "cancelled", name="timetable_event_status")
# Templates create the event type; events reuse it.
event_type_ref = postgresql.ENUM(name="timetable_event_type", create_type=False)
exception_type_enum = sa.Enum(
    "holiday", "exam_period", "break", "special_event", "other", name="timetable_exception_type"
)


def upgrade() -> None:
    op.create_table(
        "semester_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=True),
        sa.Column("program_id", sa.String(length=36), nullable=True),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("working_days", sa.JSON(), nullable=False),
        sa.Column("daily_start_time", sa.Time(), nullable=False, server_default="09:30:00"),
        sa.Column("daily_end_time", sa.Time(), nullable=False, server_default="16:15:00"),
        sa.Column("total_teaching_weeks", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_semester_plans_batch_id", "semester_plans", ["batch_id"], unique=False)

    op.create_table(
        "timetable_templates",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("semester_plan_id", sa.String(length=36), sa.ForeignKey("semester_plans.id"), nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("event_type", event_type_enum, nullable=False, server_default="lecture"),
        sa.Column("color", sa.String(length=20), nullable=False, server_default="#3B82F6"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_timetable_templates_semester_plan_id", "timetable_templates", ["semester_plan_id"], unique=False
    )

    op.create_table(
        "timetable_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("event_type", event_type_ref, nullable=False, server_default="lecture"),
        sa.Column("semester", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", event_status_enum, nullable=False, server_default="active"),
        sa.Column("source_template_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_events_room", "timetable_events", ["room"], unique=False)
    op.create_index("ix_timetable_events_status", "timetable_events", ["status"], unique=False)
    op.create_index(
        "ix_timetable_events_source_template_id", "timetable_events", ["source_template_id"], unique=False
    )
    op.create_index(
        "ix_timetable_events_teacher_window",
        "timetable_events",
        ["teacher_id", "start_time", "end_time"],
        unique=False,
    )
    op.create_index(
        "ix_timetable_events_batch_window",
        "timetable_events",
        ["batch_id", "start_time", "end_time"],
        unique=False,
    )

    op.create_table(
        "timetable_exceptions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("exception_type", exception_type_enum, nullable=False, server_default="holiday"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=True),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
        sa.Column("academic_year_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_timetable_exceptions_start_date", "timetable_exceptions", ["start_date"], unique=False)

    op.create_table(
        "subject_teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=False),
        sa.Column("batch_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("subject_id", "batch_id", name="uq_subject_teachers_subject_batch"),
    )
    op.create_index("ix_subject_teachers_teacher_id", "subject_teachers", ["teacher_id"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_index("ix_subject_teachers_teacher_id", table_name="subject_teachers")
    op.drop_table("subject_teachers")
    op.drop_index("ix_timetable_exceptions_start_date", table_name="timetable_exceptions")
    op.drop_table("timetable_exceptions")
    op.drop_index("ix_timetable_events_batch_window", table_name="timetable_events")
    op.drop_index("ix_timetable_events_teacher_window", table_name="timetable_events")
    op.drop_index("ix_timetable_events_source_template_id", table_name="timetable_events")
    op.drop_index("ix_timetable_events_status", table_name="timetable_events")
    op.drop_index("ix_timetable_events_room", table_name="timetable_events")
    op.drop_table("timetable_events")
    op.drop_index("ix_timetable_templates_semester_plan_id", table_name="timetable_templates")
    op.drop_table("timetable_templates")
    op.drop_index("ix_semester_plans_batch_id", table_name="semester_plans")
    op.drop_table("semester_plans")
    exception_type_enum.drop(op.get_bind(), checkfirst=True)
    event_status_enum.drop(op.get_bind(), checkfirst=True)
    event_type_enum.drop(op.get_bind(), checkfirst=True)
