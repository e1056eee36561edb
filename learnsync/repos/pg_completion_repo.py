"""PostgreSQL implementation of CompletionRepo."""

from __future__ import annotations

import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnsync.db.tables import LessonCompletionRow
from learnsync.models.completion import LessonCompletion


class PgCompletionRepo:
    """Satisfies the CompletionRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, student_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        stmt = select(LessonCompletionRow).where(
            LessonCompletionRow.student_id == student_id,
            LessonCompletionRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_completion(row)

    async def upsert(self, record: LessonCompletion) -> None:
        values = {
            "id": record.id,
            "student_id": record.student_id,
            "programme_id": record.programme_id,
            "module_id": record.module_id,
            "lesson_id": record.lesson_id,
            "completed_at": record.completed_at,
            "time_spent_minutes": record.time_spent_minutes,
            "quiz_score": record.quiz_score,
            "quiz_max_score": record.quiz_max_score,
        }
        # The (student_id, lesson_id) unique constraint is the dedup key.
        stmt = insert(LessonCompletionRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[LessonCompletionRow.student_id, LessonCompletionRow.lesson_id],
            set_={
                "completed_at": record.completed_at,
                "time_spent_minutes": record.time_spent_minutes,
                "quiz_score": record.quiz_score,
                "quiz_max_score": record.quiz_max_score,
            },
        )
        await self._session.execute(stmt)

    async def list_by_student(
        self,
        student_id: UUID,
        *,
        since: datetime.datetime | None = None,
        before: datetime.datetime | None = None,
        limit: int | None = None,
    ) -> list[LessonCompletion]:
        stmt = select(LessonCompletionRow).where(
            LessonCompletionRow.student_id == student_id
        )
        if since is not None:
            stmt = stmt.where(LessonCompletionRow.completed_at >= since)
        if before is not None:
            stmt = stmt.where(LessonCompletionRow.completed_at < before)
        stmt = stmt.order_by(
            LessonCompletionRow.completed_at.desc(), LessonCompletionRow.lesson_id.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_completion(r) for r in rows]

    async def delete_by_student_before(
        self, student_id: UUID, cutoff: datetime.datetime
    ) -> int:
        stmt = delete(LessonCompletionRow).where(
            LessonCompletionRow.student_id == student_id,
            LessonCompletionRow.completed_at < cutoff,
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def student_ids_active_since(self, since: datetime.datetime) -> list[UUID]:
        stmt = (
            select(LessonCompletionRow.student_id)
            .where(LessonCompletionRow.completed_at >= since)
            .distinct()
            .order_by(LessonCompletionRow.student_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def student_ids_with_records_before(
        self, cutoff: datetime.datetime
    ) -> list[UUID]:
        stmt = (
            select(LessonCompletionRow.student_id)
            .where(LessonCompletionRow.completed_at < cutoff)
            .distinct()
            .order_by(LessonCompletionRow.student_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())


def _row_to_completion(row: LessonCompletionRow) -> LessonCompletion:
    return LessonCompletion(
        id=row.id,
        student_id=row.student_id,
        programme_id=row.programme_id,
        module_id=row.module_id,
        lesson_id=row.lesson_id,
        completed_at=row.completed_at,
        time_spent_minutes=row.time_spent_minutes,
        quiz_score=row.quiz_score,
        quiz_max_score=row.quiz_max_score,
    )
