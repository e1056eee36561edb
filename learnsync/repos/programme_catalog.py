from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnsync.models.programme import Programme


class ProgrammeCatalog(Protocol):
    async def get(self, programme_id: UUID) -> Programme | None: ...


class InMemoryProgrammeCatalog:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Programme] = {}

    async def get(self, programme_id: UUID) -> Programme | None:
        return self._by_id.get(programme_id)

    def add(self, programme: Programme) -> None:
        if programme.id in self._by_id:
            raise ValueError("programme already exists")
        self._by_id[programme.id] = programme
