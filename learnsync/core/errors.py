"""Error taxonomy for the synchronization engine.

Live-path errors propagate to the caller; the API layer maps them onto
status codes (see learnsync/api/errors.py).  ComputationSkipped never
reaches a caller: the reconciliation jobs build it at the per-student
failure boundary, log it, and record it on the job report.
"""

from __future__ import annotations

from uuid import UUID


class SyncError(Exception):
    """Base class for every error this package raises on purpose."""

    retryable: bool = False


class NotFoundError(SyncError):
    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class InvalidStateError(SyncError):
    pass


class InvalidInputError(SyncError, ValueError):
    pass


class TransientStorageError(SyncError):
    """Transaction conflict or lost connection.  Safe to retry."""

    retryable = True


class ComputationSkipped(SyncError):
    def __init__(self, job: str, student_id: UUID, cause: BaseException) -> None:
        super().__init__(f"{job}: student {student_id} skipped ({cause!r})")
        self.job = job
        self.student_id = student_id
        self.cause = cause
