"""Learning statistics derived from a student's enrollments."""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from dataclasses import replace

from learnsync.models.enrollment import Enrollment
from learnsync.models.profile import Statistics


def enrollment_statistics(
    current: Statistics, enrollments: Sequence[Enrollment]
) -> Statistics:
    """Recompute every counter from the enrollments.

    Learning minutes and lessons are summed per enrollment, so they survive
    the retention cleanup that deletes old completion records.
    """
    activity = [e.progress.last_activity_at for e in enrollments if e.progress.last_activity_at]
    last_active: datetime.datetime | None = max(activity) if activity else None
    if current.last_active_at is not None and (
        last_active is None or current.last_active_at > last_active
    ):
        last_active = current.last_active_at

    return replace(
        current,
        total_learning_minutes=sum(e.progress.time_spent_minutes for e in enrollments),
        last_active_at=last_active,
        courses_enrolled=len(enrollments),
        courses_completed=sum(1 for e in enrollments if e.is_completed),
        lessons_completed=sum(len(e.progress.completed_lessons) for e in enrollments),
    )
