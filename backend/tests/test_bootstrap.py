import pytest

from app.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_ensure_event_source_template_column", lambda: None)
    monkeypatch.setattr(bootstrap, "_ensure_template_display_columns", lambda: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema compatibility bootstrap failed"):
        bootstrap.ensure_runtime_schema_compatibility()


def test_required_columns_cover_every_timetable_table():
    assert set(bootstrap.REQUIRED_COLUMNS) == {
        "semester_plans",
        "timetable_templates",
        "timetable_events",
        "timetable_exceptions",
        "subject_teachers",
        "activity_logs",
    }
    for table_name, columns in bootstrap.REQUIRED_COLUMNS.items():
        assert columns <= set(bootstrap.Base.metadata.tables[table_name].columns.keys())
