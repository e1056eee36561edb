from __future__ import annotations

FIRST_LESSON = "first_lesson"
LESSONS_10 = "lessons_10"
LESSONS_50 = "lessons_50"
STREAK_7 = "streak_7"
STREAK_30 = "streak_30"
FIRST_COURSE = "first_course_completed"

_LESSON_THRESHOLDS = ((1, FIRST_LESSON), (10, LESSONS_10), (50, LESSONS_50))
_STREAK_THRESHOLDS = ((7, STREAK_7), (30, STREAK_30))


def earned_badges(
    *,
    lessons_completed: int,
    longest_streak: int,
    courses_completed: int,
    existing: frozenset[str] = frozenset(),
) -> frozenset[str]:
    """Badges the current state qualifies for, unioned with ``existing``.

    Badges are never taken away, even when pruning lowers a counter.
    """
    earned = set(existing)
    earned.update(name for n, name in _LESSON_THRESHOLDS if lessons_completed >= n)
    earned.update(name for n, name in _STREAK_THRESHOLDS if longest_streak >= n)
    if courses_completed >= 1:
        earned.add(FIRST_COURSE)
    return frozenset(earned)
