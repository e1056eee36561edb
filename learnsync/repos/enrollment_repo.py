from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnsync.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    async def get(
        self, student_id: UUID, programme_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None: ...
    async def list_by_student(
        self, student_id: UUID, *, for_update: bool = False
    ) -> list[Enrollment]: ...
    async def save(self, enrollment: Enrollment) -> None: ...
    async def list_student_ids(self) -> list[UUID]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Enrollment] = {}

    async def get(
        self, student_id: UUID, programme_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None:
        return self._store.get((student_id, programme_id))

    async def list_by_student(
        self, student_id: UUID, *, for_update: bool = False
    ) -> list[Enrollment]:
        found = [e for e in self._store.values() if e.student_id == student_id]
        return sorted(found, key=lambda e: (e.enrolled_at, str(e.programme_id)))

    async def save(self, enrollment: Enrollment) -> None:
        key = (enrollment.student_id, enrollment.programme_id)
        existing = self._store.get(key)
        if existing is not None and existing.id != enrollment.id:
            raise ValueError("enrollment already exists for student and programme")
        self._store[key] = enrollment

    async def list_student_ids(self) -> list[UUID]:
        return sorted({e.student_id for e in self._store.values()}, key=str)

    def snapshot(self) -> dict[tuple[UUID, UUID], Enrollment]:
        # Values are frozen dataclasses, so a shallow copy is a full snapshot.
        return dict(self._store)

    def restore(self, snapshot: dict[tuple[UUID, UUID], Enrollment]) -> None:
        self._store = snapshot
