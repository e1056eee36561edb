"""Overlap guard for scheduled jobs.

A guard hands out at most one lease per job name.  The in-memory guard
covers a single scheduler process; the Redis guard is shared by every
process pointed at the same Redis, so two workers never run the same job
at once.  Leases carry a TTL so a crashed holder cannot block the job
forever.
"""

from __future__ import annotations

import logging
import uuid
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_LEASE_SECONDS = 3600


@runtime_checkable
class JobGuard(Protocol):
    async def acquire(self, job: str) -> str | None: ...
    async def release(self, job: str, token: str) -> None: ...


class InMemoryJobGuard:
    def __init__(self) -> None:
        self._held: dict[str, str] = {}

    async def acquire(self, job: str) -> str | None:
        if job in self._held:
            return None
        token = uuid.uuid4().hex
        self._held[job] = token
        return token

    async def release(self, job: str, token: str) -> None:
        if self._held.get(job) == token:
            del self._held[job]

    def is_held(self, job: str) -> bool:
        return job in self._held


class RedisJobGuard:
    """SET NX EX lease per job, released only by its holder."""

    _PREFIX = "learnsync:job-lease:"

    # Delete only if the key still holds our token; a lease that expired and
    # was taken by another process must not be released by us.
    _RELEASE_SCRIPT = """
    if redis.call('GET', KEYS[1]) == ARGV[1] then
        return redis.call('DEL', KEYS[1])
    end
    return 0
    """

    def __init__(self, redis_client, *, lease_seconds: int = DEFAULT_LEASE_SECONDS) -> None:
        self._redis = redis_client
        self._lease_seconds = lease_seconds
        self._release = None

    async def acquire(self, job: str) -> str | None:
        token = uuid.uuid4().hex
        acquired = await self._redis.set(
            f"{self._PREFIX}{job}", token, nx=True, ex=self._lease_seconds
        )
        return token if acquired else None

    async def release(self, job: str, token: str) -> None:
        if self._release is None:
            self._release = self._redis.register_script(self._RELEASE_SCRIPT)
        released = await self._release(keys=[f"{self._PREFIX}{job}"], args=[token])
        if not released:
            logger.warning("Lease for job=%s expired before release", job)
