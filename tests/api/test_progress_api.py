from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from learnsync.container import Container
from learnsync.core.errors import TransientStorageError
from learnsync.models.programme import Programme


def _enroll(client: TestClient, student, programme: Programme):
    return client.post(
        f"/v1/students/{student}/enrollments", json={"programme_id": str(programme.id)}
    )


def _complete(client: TestClient, student, programme: Programme, idx: int, minutes: int = 0):
    lesson = programme.lessons[idx]
    return client.post(
        f"/v1/students/{student}/completions",
        json={
            "programme_id": str(programme.id),
            "module_id": str(lesson.module_id),
            "lesson_id": str(lesson.id),
            "time_spent_minutes": minutes,
        },
    )


def test_enroll_returns_201(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    resp = _enroll(client, student, programme)
    assert resp.status_code == 201
    data = resp.json()
    assert data["student_id"] == str(student)
    assert data["programme_id"] == str(programme.id)
    assert data["status"] == "enrolled"
    assert data["percentage"] == 0

    again = _enroll(client, student, programme)
    assert again.status_code == 201
    assert again.json()["id"] == data["id"]


def test_enroll_unknown_programme_404(client: TestClient) -> None:
    resp = client.post(f"/v1/students/{uuid4()}/enrollments", json={"programme_id": str(uuid4())})
    assert resp.status_code == 404
    assert "programme not found" in resp.json()["detail"]


def test_completion_flow(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)

    resp = _complete(client, student, programme, 0, minutes=15)
    assert resp.status_code == 200
    assert resp.json() == {
        "progress": 25,
        "current_streak": 1,
        "longest_streak": 1,
        "points_awarded": 10,
        "total_points": 10,
        "level": 1,
    }

    resp = _complete(client, student, programme, 0, minutes=5)
    assert resp.json()["points_awarded"] == 0
    assert resp.json()["total_points"] == 10


def test_completion_without_enrollment_404(client: TestClient, programme: Programme) -> None:
    resp = _complete(client, uuid4(), programme, 0)
    assert resp.status_code == 404
    assert "enrollment not found" in resp.json()["detail"]


def test_completion_with_negative_time_422(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)
    resp = _complete(client, student, programme, 0, minutes=-1)
    assert resp.status_code == 422
    assert "time_spent_minutes" in resp.json()["detail"]


def test_malformed_body_422(client: TestClient) -> None:
    resp = client.post(f"/v1/students/{uuid4()}/completions", json={"programme_id": "nope"})
    assert resp.status_code == 422


def test_quiz_flow(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)
    quiz = programme.lessons[3]

    resp = client.post(
        f"/v1/students/{student}/quizzes",
        json={
            "programme_id": str(programme.id),
            "lesson_id": str(quiz.id),
            "score": 85,
            "max_score": 100,
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"progress": 25, "points_awarded": 19, "total_points": 19, "level": 1}


def test_quiz_score_above_max_422(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)
    resp = client.post(
        f"/v1/students/{student}/quizzes",
        json={
            "programme_id": str(programme.id),
            "lesson_id": str(programme.lessons[3].id),
            "score": 12,
            "max_score": 10,
        },
    )
    assert resp.status_code == 422


def test_reopen_incomplete_enrollment_409(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)
    resp = client.post(f"/v1/students/{student}/enrollments/{programme.id}/reopen")
    assert resp.status_code == 409


def test_dashboard(client: TestClient, programme: Programme) -> None:
    student = uuid4()
    _enroll(client, student, programme)
    _complete(client, student, programme, 0, minutes=30)
    _complete(client, student, programme, 1, minutes=30)

    resp = client.get(f"/v1/students/{student}/dashboard")
    assert resp.status_code == 200
    data = resp.json()
    assert data["enrolled_count"] == 1
    assert data["active_count"] == 1
    assert data["average_progress"] == 50
    assert data["total_hours_learned"] == 1.0
    assert data["total_points"] == 20
    assert data["badges"] == ["first_lesson"]
    assert data["per_course_progress"][0]["programme_id"] == str(programme.id)
    assert len(data["recent_activity"]) == 2


def test_dashboard_unknown_student_404(client: TestClient) -> None:
    assert client.get(f"/v1/students/{uuid4()}/dashboard").status_code == 404


def test_transient_storage_error_503_with_retry_after(
    client: TestClient,
    container: Container,
    programme: Programme,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def unavailable(*args, **kwargs):
        raise TransientStorageError("storage temporarily unavailable")

    monkeypatch.setattr(container.orchestrator, "record_completion_and_sync", unavailable)
    resp = _complete(client, uuid4(), programme, 0)
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "1"
