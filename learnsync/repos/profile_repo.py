from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnsync.models.profile import StudentProfile


class ProfileRepo(Protocol):
    async def get(
        self, student_id: UUID, *, for_update: bool = False
    ) -> StudentProfile | None: ...
    async def save(self, profile: StudentProfile) -> None: ...
    async def list_student_ids(self) -> list[UUID]: ...


class InMemoryProfileRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, StudentProfile] = {}

    async def get(
        self, student_id: UUID, *, for_update: bool = False
    ) -> StudentProfile | None:
        return self._store.get(student_id)

    async def save(self, profile: StudentProfile) -> None:
        self._store[profile.student_id] = profile

    async def list_student_ids(self) -> list[UUID]:
        return sorted(self._store, key=str)

    def snapshot(self) -> dict[UUID, StudentProfile]:
        return dict(self._store)

    def restore(self, snapshot: dict[UUID, StudentProfile]) -> None:
        self._store = snapshot
