"""Points and level formulas.

The live path adds points event by event; reconciliation recomputes the
total from completion records.  Both go through the functions below, so
the two can only disagree if the source records disagree.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from uuid import UUID

from learnsync.core.errors import InvalidInputError
from learnsync.models.completion import LessonCompletion

LESSON_POINTS = 10
POINTS_PER_LEVEL = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's round() sends halves to the even neighbour (round(2.5) == 2);
    progress and quiz points use the conventional rule instead.
    """
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def validate_quiz_score(score: float, max_score: float) -> None:
    if max_score <= 0:
        raise InvalidInputError(f"max_score must be positive (got {max_score})")
    if score < 0 or score > max_score:
        raise InvalidInputError(
            f"score must be between 0 and {max_score} (got {score})"
        )


def quiz_points(score: float, max_score: float) -> int:
    """Roughly one point per 10% scored: 85% -> 9, 84% -> 8."""
    validate_quiz_score(score, max_score)
    return round_half_up(score * 10 / max_score)


def level_for(points: int) -> int:
    return max(points, 0) // POINTS_PER_LEVEL + 1


def record_points(record: LessonCompletion) -> int:
    points = LESSON_POINTS
    if record.is_quiz:
        points += quiz_points(record.quiz_score, record.quiz_max_score)  # type: ignore[arg-type]
    return points


def archive_records(
    archived: Mapping[UUID, int], records: Iterable[LessonCompletion]
) -> dict[UUID, int]:
    """Fold the points of ``records`` into the per-lesson ``archived`` map."""
    merged = dict(archived)
    for r in records:
        merged[r.lesson_id] = max(merged.get(r.lesson_id, 0), record_points(r))
    return merged


def total_points(
    records: Iterable[LessonCompletion], archived: Mapping[UUID, int] | None = None
) -> int:
    """Sum of the best points per lesson.

    A lesson whose record was pruned and later recorded again counts once,
    at the larger of its archived and current value.
    """
    return sum(archive_records(archived or {}, records).values())


def points_gained(
    previous: LessonCompletion | None, record: LessonCompletion, archived: int = 0
) -> int:
    """Points the live path awards for one event on a lesson.

    ``previous`` is the lesson's record before the event and ``archived``
    what is kept for the lesson from a pruned record.  Only the best value
    per lesson counts: a resubmission or a weaker retake earns nothing, a
    better retake earns the difference.
    """
    before = max(archived, record_points(previous) if previous is not None else 0)
    return max(record_points(record) - before, 0)
