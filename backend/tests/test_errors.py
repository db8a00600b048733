from app.core.exceptions import (
    AppError,
    ConflictError,
    InvalidIntervalError,
    PersistenceError,
    ResourceNotFoundError,
    SchedulerError,
    ScopeMismatchError,
)


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_error_status_codes():
    assert InvalidIntervalError().status_code == 400
    assert ConflictError("clash", conflicts=[{"type": "batch_overlap"}]).details == {
        "conflicts": [{"type": "batch_overlap"}]
    }
    assert ConflictError("clash").status_code == 409
    assert ScopeMismatchError("wrong teacher").status_code == 422
    assert PersistenceError("down").status_code == 503
    assert ResourceNotFoundError("Semester plan", "p1").message == "Semester plan with id p1 not found"


def test_error_responses_use_message_and_details(client):
    response = client.post(
        "/api/timetable/events",
        json={
            "batch_id": "b1",
            "subject_id": "math",
            "teacher_id": "t1",
            "start_time": "2030-01-07T09:00:00Z",
            "end_time": "2030-01-07T09:05:00Z",
        },
    )
    assert response.status_code == 400
    assert response.json() == {"message": "Class duration should be at least 15 minutes", "details": {"minutes": 5.0}}


def test_oversized_bodies_are_rejected(client):
    response = client.post(
        "/api/timetable/check-conflicts",
        content=b"{}",
        headers={"content-type": "application/json", "content-length": "99999999"},
    )
    assert response.status_code == 413
    assert response.json()["details"]["max_bytes"] > 0


def test_security_and_timing_headers(client):
    response = client.get("/api/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "X-Process-Time-Ms" in response.headers
