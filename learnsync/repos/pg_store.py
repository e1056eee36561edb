"""PostgreSQL unit of work.

One AsyncSession transaction per ``transaction()`` block.  Enrollment and
profile reads on the write path use SELECT ... FOR UPDATE, so two events
for the same student serialize on those rows.  Conflicts and dropped
connections surface as TransientStorageError; the caller decides whether
to retry.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnsync.core.errors import TransientStorageError
from learnsync.repos.pg_completion_repo import PgCompletionRepo
from learnsync.repos.pg_enrollment_repo import PgEnrollmentRepo
from learnsync.repos.pg_profile_repo import PgProfileRepo
from learnsync.repos.store import Repos

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _is_transient(exc: DBAPIError) -> bool:
    if exc.connection_invalidated or isinstance(exc, OperationalError):
        return True
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return sqlstate in _RETRYABLE_SQLSTATES


class PgStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Repos]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield Repos(
                        enrollments=PgEnrollmentRepo(session),
                        completions=PgCompletionRepo(session),
                        profiles=PgProfileRepo(session),
                    )
        except IntegrityError as e:
            # A concurrent insert won the unique (student, lesson) or
            # (student, programme) race; replaying the event will update it.
            logger.warning("Transaction lost an insert race: %s", e.orig)
            raise TransientStorageError("concurrent write conflict") from e
        except DBAPIError as e:
            if _is_transient(e):
                logger.warning("Transient storage failure: %s", e.orig)
                raise TransientStorageError("storage temporarily unavailable") from e
            raise
