from __future__ import annotations

import asyncio
import logging

from learnsync.services.job_guard import InMemoryJobGuard, JobGuard, RedisJobGuard


class _FakeScript:
    """Evaluates the compare-and-delete release script against _FakeRedis."""

    def __init__(self, redis: _FakeRedis) -> None:
        self._redis = redis

    async def __call__(self, keys: list[str], args: list[str]) -> int:
        key, token = keys[0], args[0]
        if self._redis.data.get(key) == token:
            del self._redis.data[key]
            return 1
        return 0


class _FakeRedis:
    """The slice of redis.asyncio.Redis the guard talks to."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def set(self, key: str, value: str, *, nx: bool = False, ex: int | None = None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    def register_script(self, script: str) -> _FakeScript:
        assert "DEL" in script
        return _FakeScript(self)


def test_both_guards_satisfy_protocol() -> None:
    assert isinstance(InMemoryJobGuard(), JobGuard)
    assert isinstance(RedisJobGuard(_FakeRedis()), JobGuard)


def test_in_memory_guard_single_holder() -> None:
    guard = InMemoryJobGuard()

    async def scenario():
        first = await guard.acquire("daily")
        second = await guard.acquire("daily")
        other = await guard.acquire("hourly")
        return first, second, other

    first, second, other = asyncio.run(scenario())
    assert first is not None
    assert second is None
    assert other is not None


def test_in_memory_guard_release_requires_token() -> None:
    guard = InMemoryJobGuard()
    token = asyncio.run(guard.acquire("daily"))
    asyncio.run(guard.release("daily", "not-the-token"))
    assert guard.is_held("daily")
    asyncio.run(guard.release("daily", token))
    assert not guard.is_held("daily")
    assert asyncio.run(guard.acquire("daily")) is not None


def test_redis_guard_lease_and_ttl() -> None:
    redis = _FakeRedis()
    guard = RedisJobGuard(redis, lease_seconds=120)

    token = asyncio.run(guard.acquire("weekly_cleanup"))
    assert token is not None
    assert redis.data["learnsync:job-lease:weekly_cleanup"] == token
    assert redis.ttls["learnsync:job-lease:weekly_cleanup"] == 120
    assert asyncio.run(guard.acquire("weekly_cleanup")) is None

    asyncio.run(guard.release("weekly_cleanup", token))
    assert "learnsync:job-lease:weekly_cleanup" not in redis.data


def test_redis_guard_does_not_release_someone_elses_lease(caplog) -> None:
    redis = _FakeRedis()
    guard = RedisJobGuard(redis)
    stale = asyncio.run(guard.acquire("daily"))

    # Our lease expired and another worker took the job.
    redis.data["learnsync:job-lease:daily"] = "other-worker"
    with caplog.at_level(logging.WARNING, logger="learnsync.services.job_guard"):
        asyncio.run(guard.release("daily", stale))

    assert redis.data["learnsync:job-lease:daily"] == "other-worker"
    assert "expired before release" in caplog.text
