from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True, slots=True)
class StreakBlock:
    current_learning_streak: int = 0
    longest_learning_streak: int = 0
    last_streak_day: datetime.date | None = None


@dataclass(frozen=True, slots=True)
class Gamification:
    total_points: int = 0
    level: int = 1
    badges: frozenset[str] = field(default_factory=frozenset)
    # Best points per lesson whose completion record the retention
    # cleanup deleted.
    archived_lessons: Mapping[UUID, int] = field(default_factory=dict)
    streaks: StreakBlock = field(default_factory=StreakBlock)

    @property
    def archived_points(self) -> int:
        return sum(self.archived_lessons.values())


@dataclass(frozen=True, slots=True)
class Statistics:
    total_learning_minutes: int = 0
    last_active_at: datetime.datetime | None = None
    courses_enrolled: int = 0
    courses_completed: int = 0
    lessons_completed: int = 0

    @property
    def total_learning_hours(self) -> float:
        return self.total_learning_minutes / 60


@dataclass(frozen=True, slots=True)
class StudentProfile:
    """Per-student aggregate read model.

    Everything here is derived from enrollments and completion records;
    the live path patches it incrementally and reconciliation rebuilds it.
    """

    student_id: UUID
    gamification: Gamification = field(default_factory=Gamification)
    statistics: Statistics = field(default_factory=Statistics)

    @staticmethod
    def new(*, student_id: UUID) -> StudentProfile:
        return StudentProfile(student_id=student_id)
