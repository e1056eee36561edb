"""Profile assembly shared by the live and batch paths."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from uuid import UUID

from learnsync.models.enrollment import Enrollment
from learnsync.models.profile import StreakBlock, StudentProfile
from learnsync.services.badges import earned_badges
from learnsync.services.points import level_for
from learnsync.services.statistics import enrollment_statistics


def rebuild_profile(
    profile: StudentProfile,
    *,
    enrollments: Sequence[Enrollment],
    streaks: StreakBlock | None = None,
    total_points: int | None = None,
    archived_lessons: Mapping[UUID, int] | None = None,
) -> StudentProfile:
    """Return ``profile`` with the given blocks replaced and everything
    derived from them (level, badges, statistics) recomputed.

    ``None`` keeps the stored value for that block.
    """
    g = profile.gamification
    if streaks is None:
        streaks = g.streaks
    if total_points is None:
        total_points = g.total_points
    if archived_lessons is None:
        archived_lessons = g.archived_lessons
    total_points = max(total_points, 0)

    statistics = enrollment_statistics(profile.statistics, enrollments)
    badges = earned_badges(
        lessons_completed=statistics.lessons_completed,
        longest_streak=streaks.longest_learning_streak,
        courses_completed=statistics.courses_completed,
        existing=g.badges,
    )
    gamification = replace(
        g,
        total_points=total_points,
        level=level_for(total_points),
        badges=badges,
        archived_lessons=archived_lessons,
        streaks=streaks,
    )
    return replace(profile, gamification=gamification, statistics=statistics)
