from __future__ import annotations

from uuid import uuid4

from learnsync.core.errors import (
    ComputationSkipped,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    SyncError,
    TransientStorageError,
)


def test_every_error_is_a_sync_error() -> None:
    for exc in (
        NotFoundError("lesson", "x"),
        InvalidStateError("closed"),
        InvalidInputError("bad"),
        TransientStorageError("down"),
        ComputationSkipped("daily_reconciliation", uuid4(), RuntimeError("x")),
    ):
        assert isinstance(exc, SyncError)


def test_only_transient_errors_are_retryable() -> None:
    assert TransientStorageError("down").retryable is True
    assert NotFoundError("lesson", "x").retryable is False
    assert InvalidStateError("closed").retryable is False


def test_not_found_carries_resource_and_identifier() -> None:
    lesson_id = uuid4()
    exc = NotFoundError("lesson", lesson_id)
    assert exc.resource == "lesson"
    assert exc.identifier == lesson_id
    assert str(exc) == f"lesson not found: {lesson_id}"


def test_computation_skipped_wraps_the_cause() -> None:
    student = uuid4()
    cause = NotFoundError("programme", "p1")
    skipped = ComputationSkipped("weekly_cleanup", student, cause)
    assert skipped.job == "weekly_cleanup"
    assert skipped.student_id == student
    assert skipped.cause is cause
    assert str(student) in str(skipped)
