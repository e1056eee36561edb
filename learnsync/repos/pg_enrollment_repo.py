"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnsync.db.tables import EnrollmentRow
from learnsync.models.enrollment import Enrollment, EnrollmentProgress, EnrollmentStatus


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, student_id: UUID, programme_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.programme_id == programme_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def list_by_student(
        self, student_id: UUID, *, for_update: bool = False
    ) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.student_id == student_id)
            .order_by(EnrollmentRow.enrolled_at, EnrollmentRow.programme_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def save(self, enrollment: Enrollment) -> None:
        values = _enrollment_to_values(enrollment)
        stmt = insert(EnrollmentRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[EnrollmentRow.id],
            set_={k: v for k, v in values.items() if k != "id"},
        )
        await self._session.execute(stmt)

    async def list_student_ids(self) -> list[UUID]:
        stmt = (
            select(EnrollmentRow.student_id)
            .distinct()
            .order_by(EnrollmentRow.student_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())


def _enrollment_to_values(enrollment: Enrollment) -> dict:
    progress = enrollment.progress
    return {
        "id": enrollment.id,
        "student_id": enrollment.student_id,
        "programme_id": enrollment.programme_id,
        "status": enrollment.status.value,
        "enrolled_at": enrollment.enrolled_at,
        "completed_at": enrollment.completed_at,
        "completed_lessons": sorted(progress.completed_lessons, key=str),
        "completed_modules": sorted(progress.completed_modules, key=str),
        "time_spent_minutes": progress.time_spent_minutes,
        "last_activity_at": progress.last_activity_at,
        "progress_percentage": progress.percentage,
    }


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        student_id=row.student_id,
        programme_id=row.programme_id,
        enrolled_at=row.enrolled_at,
        status=EnrollmentStatus(row.status),
        completed_at=row.completed_at,
        progress=EnrollmentProgress(
            completed_lessons=frozenset(row.completed_lessons or ()),
            completed_modules=frozenset(row.completed_modules or ()),
            time_spent_minutes=row.time_spent_minutes,
            last_activity_at=row.last_activity_at,
            percentage=row.progress_percentage,
        ),
    )
