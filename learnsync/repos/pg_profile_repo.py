"""PostgreSQL implementation of ProfileRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnsync.db.tables import StudentProfileRow
from learnsync.models.profile import Gamification, Statistics, StreakBlock, StudentProfile


class PgProfileRepo:
    """Satisfies the ProfileRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, student_id: UUID, *, for_update: bool = False
    ) -> StudentProfile | None:
        stmt = select(StudentProfileRow).where(StudentProfileRow.student_id == student_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_profile(row)

    async def save(self, profile: StudentProfile) -> None:
        g = profile.gamification
        s = profile.statistics
        values = {
            "student_id": profile.student_id,
            "total_points": g.total_points,
            "level": g.level,
            "badges": sorted(g.badges),
            "archived_lessons": {str(k): v for k, v in g.archived_lessons.items()},
            "current_learning_streak": g.streaks.current_learning_streak,
            "longest_learning_streak": g.streaks.longest_learning_streak,
            "last_streak_day": g.streaks.last_streak_day,
            "total_learning_minutes": s.total_learning_minutes,
            "last_active_at": s.last_active_at,
            "courses_enrolled": s.courses_enrolled,
            "courses_completed": s.courses_completed,
            "lessons_completed": s.lessons_completed,
        }
        stmt = insert(StudentProfileRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StudentProfileRow.student_id],
            set_={k: v for k, v in values.items() if k != "student_id"},
        )
        await self._session.execute(stmt)

    async def list_student_ids(self) -> list[UUID]:
        stmt = select(StudentProfileRow.student_id).order_by(StudentProfileRow.student_id)
        return list((await self._session.execute(stmt)).scalars().all())


def _row_to_profile(row: StudentProfileRow) -> StudentProfile:
    return StudentProfile(
        student_id=row.student_id,
        gamification=Gamification(
            total_points=row.total_points,
            level=row.level,
            badges=frozenset(row.badges or ()),
            archived_lessons={UUID(k): v for k, v in (row.archived_lessons or {}).items()},
            streaks=StreakBlock(
                current_learning_streak=row.current_learning_streak,
                longest_learning_streak=row.longest_learning_streak,
                last_streak_day=row.last_streak_day,
            ),
        ),
        statistics=Statistics(
            total_learning_minutes=row.total_learning_minutes,
            last_active_at=row.last_active_at,
            courses_enrolled=row.courses_enrolled,
            courses_completed=row.courses_completed,
            lessons_completed=row.lessons_completed,
        ),
    )
