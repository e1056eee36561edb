"""Enrollment progress derivation.

``apply_completion`` folds one live event into an enrollment;
``recompute_progress`` derives percentage, completed modules and the
completed transition from the completed-lesson set.  The live path calls
both, reconciliation only the second.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from dataclasses import replace
from uuid import UUID

from learnsync.core.errors import InvalidStateError
from learnsync.models.enrollment import Enrollment, EnrollmentStatus
from learnsync.models.programme import Programme
from learnsync.services.points import round_half_up

logger = logging.getLogger(__name__)


def calculate_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(max(round_half_up(100 * completed / total), 0), 100)


def completed_modules(
    programme: Programme, completed_lessons: frozenset[UUID]
) -> frozenset[UUID]:
    return frozenset(
        module_id
        for module_id, lesson_ids in programme.module_lesson_ids().items()
        if lesson_ids <= completed_lessons
    )


def apply_completion(
    enrollment: Enrollment,
    lesson_id: UUID,
    time_spent_minutes: int,
    now: datetime.datetime,
) -> Enrollment:
    """Add one completed lesson and its time to the enrollment.

    Raises InvalidStateError for cancelled or expired enrollments.
    """
    if not enrollment.status.accepts_progress:
        raise InvalidStateError(
            f"enrollment {enrollment.id} is {enrollment.status.value}"
        )

    progress = replace(
        enrollment.progress,
        completed_lessons=enrollment.progress.completed_lessons | {lesson_id},
        time_spent_minutes=enrollment.progress.time_spent_minutes + time_spent_minutes,
        last_activity_at=now,
    )
    status = enrollment.status
    if status in (EnrollmentStatus.ENROLLED, EnrollmentStatus.PAUSED):
        status = EnrollmentStatus.ACTIVE
    return replace(enrollment, status=status, progress=progress)


def recompute_progress(
    enrollment: Enrollment,
    programme: Programme,
    now: datetime.datetime,
    extra_lessons: Iterable[UUID] = (),
) -> Enrollment:
    """Derive percentage and modules; flip to completed at 100%, once.

    ``extra_lessons`` lets reconciliation add lessons that have a completion
    record but are missing from the enrollment's set.  Lessons no longer in
    the programme are dropped.  A completed enrollment stays completed and
    keeps its ``completed_at``.
    """
    known = {lesson.id for lesson in programme.lessons}
    lessons = frozenset(
        lesson_id
        for lesson_id in (*enrollment.progress.completed_lessons, *extra_lessons)
        if lesson_id in known
    )
    percentage = calculate_percentage(len(lessons), programme.total_lessons)
    progress = replace(
        enrollment.progress,
        completed_lessons=lessons,
        completed_modules=completed_modules(programme, lessons),
        percentage=percentage,
    )
    updated = replace(enrollment, progress=progress)

    if (
        percentage == 100
        and not enrollment.is_completed
        and enrollment.status.accepts_progress
    ):
        logger.info(
            "Enrollment completed",
            extra={
                "student_id": str(enrollment.student_id),
                "programme_id": str(enrollment.programme_id),
            },
        )
        updated = replace(updated, status=EnrollmentStatus.COMPLETED, completed_at=now)
    return updated
