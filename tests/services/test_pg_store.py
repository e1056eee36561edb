"""PostgreSQL adapter pieces that need no running database.

The error mapping of PgStore.transaction() is exercised against a stub
session; row conversion against unattached ORM instances.
"""

from __future__ import annotations

import asyncio
import datetime
from dataclasses import replace
from uuid import uuid4

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError

from learnsync.core.errors import TransientStorageError
from learnsync.db.tables import EnrollmentRow, StudentProfileRow
from learnsync.models.enrollment import Enrollment, EnrollmentProgress, EnrollmentStatus
from learnsync.repos.pg_enrollment_repo import _enrollment_to_values, _row_to_enrollment
from learnsync.repos.pg_profile_repo import _row_to_profile
from learnsync.repos.pg_store import PgStore, _is_transient

NOW = datetime.datetime(2026, 3, 10, 10, 0, tzinfo=datetime.UTC)


class _PgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class _StubTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class _StubSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    def begin(self) -> _StubTransaction:
        return _StubTransaction()


def _raise_inside_transaction(exc: Exception) -> None:
    store = PgStore(_StubSession)  # type: ignore[arg-type]

    async def scenario() -> None:
        async with store.transaction():
            raise exc

    asyncio.run(scenario())


# ---- transient classification ----


def test_serialization_failure_and_deadlock_are_transient() -> None:
    assert _is_transient(DBAPIError("UPDATE", {}, _PgError("40001")))
    assert _is_transient(DBAPIError("UPDATE", {}, _PgError("40P01")))


def test_operational_error_is_transient() -> None:
    assert _is_transient(OperationalError("SELECT 1", {}, Exception("connection reset")))


def test_invalidated_connection_is_transient() -> None:
    err = DBAPIError("SELECT 1", {}, Exception("gone"), connection_invalidated=True)
    assert _is_transient(err)


def test_syntax_error_is_not_transient() -> None:
    assert not _is_transient(ProgrammingError("SELEC 1", {}, _PgError("42601")))


# ---- PgStore.transaction error mapping ----


def test_transaction_maps_operational_error() -> None:
    with pytest.raises(TransientStorageError) as exc_info:
        _raise_inside_transaction(OperationalError("SELECT 1", {}, Exception("reset")))
    assert exc_info.value.retryable is True


def test_transaction_maps_unique_violation() -> None:
    with pytest.raises(TransientStorageError, match="concurrent write conflict"):
        _raise_inside_transaction(IntegrityError("INSERT", {}, _PgError("23505")))


def test_transaction_reraises_non_transient_errors() -> None:
    with pytest.raises(ProgrammingError):
        _raise_inside_transaction(ProgrammingError("SELEC 1", {}, _PgError("42601")))


def test_transaction_leaves_domain_errors_alone() -> None:
    with pytest.raises(ValueError, match="boom"):
        _raise_inside_transaction(ValueError("boom"))


# ---- row conversion ----


def test_enrollment_row_conversion_keeps_every_field() -> None:
    lesson, module = uuid4(), uuid4()
    enrollment = replace(
        Enrollment.new(student_id=uuid4(), programme_id=uuid4(), enrolled_at=NOW),
        status=EnrollmentStatus.COMPLETED,
        completed_at=NOW,
        progress=EnrollmentProgress(
            completed_lessons=frozenset({lesson}),
            completed_modules=frozenset({module}),
            time_spent_minutes=42,
            last_activity_at=NOW,
            percentage=100,
        ),
    )
    row = EnrollmentRow(**_enrollment_to_values(enrollment))
    assert row.status == "completed"
    assert row.completed_lessons == [lesson]
    assert _row_to_enrollment(row) == enrollment


def test_profile_row_with_null_badges() -> None:
    row = StudentProfileRow(
        student_id=uuid4(),
        total_points=250,
        level=3,
        badges=None,
        archived_lessons=None,
        current_learning_streak=2,
        longest_learning_streak=9,
        last_streak_day=NOW.date(),
        total_learning_minutes=90,
        last_active_at=NOW,
        courses_enrolled=2,
        courses_completed=1,
        lessons_completed=25,
    )
    profile = _row_to_profile(row)
    assert profile.gamification.badges == frozenset()
    assert profile.gamification.archived_lessons == {}
    assert profile.gamification.level == 3
    assert profile.gamification.streaks.longest_learning_streak == 9
    assert profile.statistics.total_learning_hours == 1.5


def test_profile_row_archived_lessons_keyed_by_lesson_id() -> None:
    lesson = uuid4()
    row = StudentProfileRow(
        student_id=uuid4(),
        total_points=19,
        level=1,
        badges=["first_lesson"],
        archived_lessons={str(lesson): 19},
        current_learning_streak=0,
        longest_learning_streak=1,
        last_streak_day=None,
        total_learning_minutes=0,
        last_active_at=None,
        courses_enrolled=1,
        courses_completed=0,
        lessons_completed=1,
    )
    profile = _row_to_profile(row)
    assert profile.gamification.archived_lessons == {lesson: 19}
    assert profile.gamification.archived_points == 19
