from __future__ import annotations

import datetime
from dataclasses import replace
from uuid import uuid4

import pytest

from learnsync.core.errors import InvalidStateError
from learnsync.models.enrollment import Enrollment, EnrollmentStatus
from learnsync.models.programme import Programme
from learnsync.services.progress import (
    apply_completion,
    calculate_percentage,
    completed_modules,
    recompute_progress,
)

NOW = datetime.datetime(2026, 3, 10, 10, 0, tzinfo=datetime.UTC)


def _enrollment(programme: Programme) -> Enrollment:
    return Enrollment.new(student_id=uuid4(), programme_id=programme.id, enrolled_at=NOW)


@pytest.fixture
def prog() -> Programme:
    return Programme.new(title="Stats", modules=[[False, False], [False, False]])


# ---- percentage ----


def test_percentage_of_empty_programme_is_zero() -> None:
    assert calculate_percentage(0, 0) == 0
    assert calculate_percentage(3, 0) == 0


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [(1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (4, 4, 100), (0, 5, 0)],
)
def test_percentage_rounds_half_up(completed: int, total: int, expected: int) -> None:
    assert calculate_percentage(completed, total) == expected


def test_percentage_is_clamped() -> None:
    assert calculate_percentage(12, 10) == 100


def test_percentage_is_monotonic_in_completed_count() -> None:
    values = [calculate_percentage(n, 7) for n in range(8)]
    assert values == sorted(values)
    assert values[-1] == 100


# ---- modules ----


def test_module_complete_only_when_all_its_lessons_are(prog: Programme) -> None:
    first, second = prog.lessons[0], prog.lessons[1]
    assert completed_modules(prog, frozenset({first.id})) == frozenset()
    assert completed_modules(prog, frozenset({first.id, second.id})) == {first.module_id}


# ---- live event ----


def test_apply_completion_activates_and_accumulates(prog: Programme) -> None:
    e = _enrollment(prog)
    lesson = prog.lessons[0]
    e = apply_completion(e, lesson.id, 15, NOW)
    e = apply_completion(e, lesson.id, 5, NOW)
    assert e.status is EnrollmentStatus.ACTIVE
    assert e.progress.completed_lessons == {lesson.id}
    assert e.progress.time_spent_minutes == 20
    assert e.progress.last_activity_at == NOW


def test_apply_completion_resumes_paused(prog: Programme) -> None:
    e = replace(_enrollment(prog), status=EnrollmentStatus.PAUSED)
    assert apply_completion(e, prog.lessons[0].id, 0, NOW).status is EnrollmentStatus.ACTIVE


@pytest.mark.parametrize("status", [EnrollmentStatus.CANCELLED, EnrollmentStatus.EXPIRED])
def test_apply_completion_rejects_closed_enrollments(
    prog: Programme, status: EnrollmentStatus
) -> None:
    e = replace(_enrollment(prog), status=status)
    with pytest.raises(InvalidStateError):
        apply_completion(e, prog.lessons[0].id, 0, NOW)


# ---- recompute and the completed transition ----


def test_recompute_sets_percentage_and_modules(prog: Programme) -> None:
    e = _enrollment(prog)
    for lesson in prog.lessons[:2]:
        e = apply_completion(e, lesson.id, 0, NOW)
    e = recompute_progress(e, prog, NOW)
    assert e.progress.percentage == 50
    assert e.progress.completed_modules == {prog.lessons[0].module_id}
    assert e.status is EnrollmentStatus.ACTIVE
    assert e.completed_at is None


def test_completed_transition_happens_once(prog: Programme) -> None:
    e = _enrollment(prog)
    for lesson in prog.lessons:
        e = apply_completion(e, lesson.id, 0, NOW)
    e = recompute_progress(e, prog, NOW)
    assert e.status is EnrollmentStatus.COMPLETED
    assert e.completed_at == NOW

    later = NOW + datetime.timedelta(days=3)
    again = recompute_progress(e, prog, later)
    assert again.completed_at == NOW


def test_recompute_never_reverts_completed(prog: Programme) -> None:
    e = _enrollment(prog)
    for lesson in prog.lessons:
        e = apply_completion(e, lesson.id, 0, NOW)
    e = recompute_progress(e, prog, NOW)

    grown = replace(
        prog, lessons=prog.lessons + Programme.new(title="x", modules=[[False]]).lessons
    )
    after = recompute_progress(e, grown, NOW + datetime.timedelta(days=1))
    assert after.progress.percentage == 80
    assert after.status is EnrollmentStatus.COMPLETED
    assert after.completed_at == NOW


def test_recompute_adds_extra_lessons_and_drops_unknown(prog: Programme) -> None:
    e = _enrollment(prog)
    e = recompute_progress(e, prog, NOW, extra_lessons=[prog.lessons[3].id, uuid4()])
    assert e.progress.completed_lessons == {prog.lessons[3].id}
    assert e.progress.percentage == 25


def test_cancelled_enrollment_is_not_completed_by_recompute(prog: Programme) -> None:
    e = replace(_enrollment(prog), status=EnrollmentStatus.CANCELLED)
    e = recompute_progress(e, prog, NOW, extra_lessons=[lesson.id for lesson in prog.lessons])
    assert e.progress.percentage == 100
    assert e.status is EnrollmentStatus.CANCELLED
    assert e.completed_at is None
