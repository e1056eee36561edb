"""Completion recording: one record per (student, lesson).

These functions write only the completion collection.  Aggregates are the
orchestrator's job.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, replace
from uuid import UUID

from learnsync.core.errors import InvalidInputError, NotFoundError
from learnsync.models.completion import LessonCompletion
from learnsync.models.programme import Programme, ProgrammeLesson
from learnsync.repos.completion_repo import CompletionRepo
from learnsync.repos.programme_catalog import ProgrammeCatalog
from learnsync.services.points import validate_quiz_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecordResult:
    record: LessonCompletion
    created: bool
    # The row as it was before this event, or None when newly created.
    previous: LessonCompletion | None = None


async def resolve_lesson(
    catalog: ProgrammeCatalog,
    programme_id: UUID,
    lesson_id: UUID,
    module_id: UUID | None = None,
) -> tuple[Programme, ProgrammeLesson]:
    programme = await catalog.get(programme_id)
    if programme is None:
        raise NotFoundError("programme", programme_id)
    lesson = programme.lesson(lesson_id)
    if lesson is None:
        raise NotFoundError("lesson", lesson_id)
    if module_id is not None and lesson.module_id != module_id:
        raise NotFoundError("module", module_id)
    return programme, lesson


def _validate_time(time_spent_minutes: int) -> None:
    if time_spent_minutes < 0:
        raise InvalidInputError(
            f"time_spent_minutes must be >= 0 (got {time_spent_minutes})"
        )


async def record_completion(
    completions: CompletionRepo,
    *,
    student_id: UUID,
    programme_id: UUID,
    lesson: ProgrammeLesson,
    time_spent_minutes: int,
    now: datetime.datetime,
) -> RecordResult:
    _validate_time(time_spent_minutes)

    existing = await completions.get(student_id, lesson.id)
    if existing is None:
        record = LessonCompletion.new(
            student_id=student_id,
            programme_id=programme_id,
            module_id=lesson.module_id,
            lesson_id=lesson.id,
            completed_at=now,
            time_spent_minutes=time_spent_minutes,
        )
        await completions.upsert(record)
        logger.debug("Recorded lesson=%s for student=%s", lesson.id, student_id)
        return RecordResult(record=record, created=True)

    record = replace(
        existing,
        completed_at=now,
        time_spent_minutes=existing.time_spent_minutes + time_spent_minutes,
    )
    await completions.upsert(record)
    return RecordResult(record=record, created=False, previous=existing)


async def record_quiz(
    completions: CompletionRepo,
    *,
    student_id: UUID,
    programme_id: UUID,
    lesson: ProgrammeLesson,
    score: float,
    max_score: float,
    time_spent_minutes: int,
    now: datetime.datetime,
) -> RecordResult:
    """Record a quiz attempt, keeping the best score seen so far."""
    if not lesson.is_quiz:
        raise InvalidInputError(f"lesson {lesson.id} is not a quiz")
    validate_quiz_score(score, max_score)
    _validate_time(time_spent_minutes)

    existing = await completions.get(student_id, lesson.id)
    if existing is None:
        record = LessonCompletion.new(
            student_id=student_id,
            programme_id=programme_id,
            module_id=lesson.module_id,
            lesson_id=lesson.id,
            completed_at=now,
            time_spent_minutes=time_spent_minutes,
            quiz_score=score,
            quiz_max_score=max_score,
        )
        await completions.upsert(record)
        return RecordResult(record=record, created=True)

    best_score, best_max = existing.quiz_score, existing.quiz_max_score
    if not existing.is_quiz or score / max_score > best_score / best_max:  # type: ignore[operator]
        best_score, best_max = score, max_score

    record = replace(
        existing,
        completed_at=now,
        time_spent_minutes=existing.time_spent_minutes + time_spent_minutes,
        quiz_score=best_score,
        quiz_max_score=best_max,
    )
    await completions.upsert(record)
    return RecordResult(record=record, created=False, previous=existing)
