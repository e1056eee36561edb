"""PostgreSQL implementation of ProgrammeCatalog."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnsync.db.tables import ProgrammeLessonRow, ProgrammeRow
from learnsync.models.programme import Programme, ProgrammeLesson


class PgProgrammeCatalog:
    """Read-only catalog lookups in their own short session.

    The catalog is not part of the progress unit of work: it is reference
    data another service owns.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, programme_id: UUID) -> Programme | None:
        async with self._session_factory() as session:
            programme = await session.get(ProgrammeRow, programme_id)
            if programme is None:
                return None
            stmt = (
                select(ProgrammeLessonRow)
                .where(ProgrammeLessonRow.programme_id == programme_id)
                .order_by(ProgrammeLessonRow.position)
            )
            lessons = (await session.execute(stmt)).scalars().all()
        return Programme(
            id=programme.id,
            title=programme.title,
            lessons=tuple(
                ProgrammeLesson(id=r.id, module_id=r.module_id, is_quiz=r.is_quiz)
                for r in lessons
            ),
        )
