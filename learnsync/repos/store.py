"""Unit of work over the three mutable collections.

Every live-path event and every per-student reconciliation step runs
inside ``async with store.transaction() as repos:``.  Leaving the block
normally commits; leaving it with an exception rolls back every write made
through ``repos``.

InMemoryStore serializes transactions with one asyncio.Lock (the storage
layer serializing concurrent writers) and rolls back by restoring the
snapshot taken on entry.  PgStore (pg_store.py) maps the same contract onto
an AsyncSession transaction.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from learnsync.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from learnsync.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from learnsync.repos.profile_repo import InMemoryProfileRepo, ProfileRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Repos:
    enrollments: EnrollmentRepo
    completions: CompletionRepo
    profiles: ProfileRepo


class ProgressStore(Protocol):
    def transaction(self): ...  # -> AsyncContextManager[Repos]


class InMemoryStore:
    def __init__(self) -> None:
        self.enrollments = InMemoryEnrollmentRepo()
        self.completions = InMemoryCompletionRepo()
        self.profiles = InMemoryProfileRepo()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repos]:
        async with self._lock:
            snapshot = (
                self.enrollments.snapshot(),
                self.completions.snapshot(),
                self.profiles.snapshot(),
            )
            try:
                yield Repos(
                    enrollments=self.enrollments,
                    completions=self.completions,
                    profiles=self.profiles,
                )
            except BaseException:
                self.enrollments.restore(snapshot[0])
                self.completions.restore(snapshot[1])
                self.profiles.restore(snapshot[2])
                logger.debug("In-memory transaction rolled back")
                raise

    def clear(self) -> None:
        self.enrollments.restore({})
        self.completions.restore({})
        self.profiles.restore({})
