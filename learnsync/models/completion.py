from __future__ import annotations

import datetime
from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    """One row per (student, lesson).

    Re-completing a lesson updates this row in place; it never adds a
    second one.  For quiz lessons the score fields hold the best attempt.
    """

    id: UUID
    student_id: UUID
    programme_id: UUID
    module_id: UUID
    lesson_id: UUID
    completed_at: datetime.datetime
    time_spent_minutes: int = 0
    quiz_score: float | None = None
    quiz_max_score: float | None = None

    @property
    def is_quiz(self) -> bool:
        return self.quiz_score is not None and self.quiz_max_score is not None

    @staticmethod
    def new(
        *,
        student_id: UUID,
        programme_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
        completed_at: datetime.datetime,
        time_spent_minutes: int = 0,
        quiz_score: float | None = None,
        quiz_max_score: float | None = None,
    ) -> LessonCompletion:
        return LessonCompletion(
            id=uuid4(),
            student_id=student_id,
            programme_id=programme_id,
            module_id=module_id,
            lesson_id=lesson_id,
            completed_at=completed_at,
            time_spent_minutes=time_spent_minutes,
            quiz_score=quiz_score,
            quiz_max_score=quiz_max_score,
        )
