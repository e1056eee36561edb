from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID, uuid4


class EnrollmentStatus(str, Enum):
    ENROLLED = "enrolled"
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def accepts_progress(self) -> bool:
        return self not in (EnrollmentStatus.CANCELLED, EnrollmentStatus.EXPIRED)


@dataclass(frozen=True, slots=True)
class EnrollmentProgress:
    completed_lessons: frozenset[UUID] = field(default_factory=frozenset)
    completed_modules: frozenset[UUID] = field(default_factory=frozenset)
    time_spent_minutes: int = 0
    last_activity_at: datetime.datetime | None = None
    percentage: int = 0


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    student_id: UUID
    programme_id: UUID
    enrolled_at: datetime.datetime
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED
    completed_at: datetime.datetime | None = None
    progress: EnrollmentProgress = field(default_factory=EnrollmentProgress)

    @property
    def is_completed(self) -> bool:
        return self.status is EnrollmentStatus.COMPLETED

    @staticmethod
    def new(
        *,
        student_id: UUID,
        programme_id: UUID,
        enrolled_at: datetime.datetime,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            programme_id=programme_id,
            enrolled_at=enrolled_at,
        )
