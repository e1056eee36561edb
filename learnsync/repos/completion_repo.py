from __future__ import annotations

import datetime
from typing import Protocol
from uuid import UUID

from learnsync.models.completion import LessonCompletion


class CompletionRepo(Protocol):
    async def get(self, student_id: UUID, lesson_id: UUID) -> LessonCompletion | None: ...
    async def upsert(self, record: LessonCompletion) -> None: ...
    async def list_by_student(
        self,
        student_id: UUID,
        *,
        since: datetime.datetime | None = None,
        before: datetime.datetime | None = None,
        limit: int | None = None,
    ) -> list[LessonCompletion]: ...
    async def delete_by_student_before(
        self, student_id: UUID, cutoff: datetime.datetime
    ) -> int: ...
    async def student_ids_active_since(self, since: datetime.datetime) -> list[UUID]: ...
    async def student_ids_with_records_before(
        self, cutoff: datetime.datetime
    ) -> list[UUID]: ...


class InMemoryCompletionRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], LessonCompletion] = {}

    async def get(self, student_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        return self._store.get((student_id, lesson_id))

    async def upsert(self, record: LessonCompletion) -> None:
        self._store[(record.student_id, record.lesson_id)] = record

    async def list_by_student(
        self,
        student_id: UUID,
        *,
        since: datetime.datetime | None = None,
        before: datetime.datetime | None = None,
        limit: int | None = None,
    ) -> list[LessonCompletion]:
        """Newest first, like the SQL implementation's ORDER BY."""
        found = [
            r
            for r in self._store.values()
            if r.student_id == student_id
            and (since is None or r.completed_at >= since)
            and (before is None or r.completed_at < before)
        ]
        found.sort(key=lambda r: (r.completed_at, str(r.lesson_id)), reverse=True)
        return found if limit is None else found[:limit]

    async def delete_by_student_before(
        self, student_id: UUID, cutoff: datetime.datetime
    ) -> int:
        stale = [
            key
            for key, r in self._store.items()
            if r.student_id == student_id and r.completed_at < cutoff
        ]
        for key in stale:
            del self._store[key]
        return len(stale)

    async def student_ids_active_since(self, since: datetime.datetime) -> list[UUID]:
        ids = {r.student_id for r in self._store.values() if r.completed_at >= since}
        return sorted(ids, key=str)

    async def student_ids_with_records_before(
        self, cutoff: datetime.datetime
    ) -> list[UUID]:
        ids = {r.student_id for r in self._store.values() if r.completed_at < cutoff}
        return sorted(ids, key=str)

    def snapshot(self) -> dict[tuple[UUID, UUID], LessonCompletion]:
        return dict(self._store)

    def restore(self, snapshot: dict[tuple[UUID, UUID], LessonCompletion]) -> None:
        self._store = snapshot
