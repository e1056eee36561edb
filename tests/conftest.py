from __future__ import annotations

import datetime
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from learnsync.container import Container, build_container
from learnsync.core.config import Settings
from learnsync.main import app
from learnsync.models.programme import Programme
from learnsync.repos.programme_catalog import InMemoryProgrammeCatalog
from learnsync.repos.store import InMemoryStore
from learnsync.services.job_guard import InMemoryJobGuard

# A Tuesday, mid-morning UTC.
T0 = datetime.datetime(2026, 3, 10, 10, 0, tzinfo=datetime.UTC)


class FakeClock:
    """Mutable stand-in for the wall clock; components call it like utc_now()."""

    def __init__(self, now: datetime.datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)

    def set(self, now: datetime.datetime) -> None:
        self.now = now


TEST_SETTINGS = Settings(
    app_env="test",
    log_level="info",
    log_json=False,
    port=8000,
    database_url=None,
    redis_url=None,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> InMemoryProgrammeCatalog:
    return InMemoryProgrammeCatalog()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def guard() -> InMemoryJobGuard:
    return InMemoryJobGuard()


@pytest.fixture
def programme(catalog: InMemoryProgrammeCatalog) -> Programme:
    """Two modules of two lessons; the last lesson is a quiz."""
    p = Programme.new(title="Intro to Python", modules=[[False, False], [False, True]])
    catalog.add(p)
    return p


@pytest.fixture
def long_programme(catalog: InMemoryProgrammeCatalog) -> Programme:
    """Ten plain lessons in one module."""
    p = Programme.new(title="Data Analysis", modules=[[False] * 10])
    catalog.add(p)
    return p


@pytest.fixture
def container(
    store: InMemoryStore,
    catalog: InMemoryProgrammeCatalog,
    guard: InMemoryJobGuard,
    clock: FakeClock,
) -> Container:
    return build_container(
        TEST_SETTINGS, store=store, catalog=catalog, guard=guard, clock=clock
    )


@pytest.fixture
def client(container: Container) -> Iterator[TestClient]:
    original = app.state.container
    app.state.container = container
    try:
        yield TestClient(app)
    finally:
        app.state.container = original
