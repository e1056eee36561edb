"""Composition root.

Builds every component once with explicit dependencies.  With
DATABASE_URL set the PostgreSQL store and catalog are used, with REDIS_URL
set the Redis job guard; otherwise the in-memory implementations.  Tests
call ``build_container`` with their own store, catalog and clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from learnsync.core.config import SETTINGS, Settings
from learnsync.db.engine import async_session_factory
from learnsync.db.redis import redis_pool
from learnsync.repos.pg_programme_catalog import PgProgrammeCatalog
from learnsync.repos.pg_store import PgStore
from learnsync.repos.programme_catalog import InMemoryProgrammeCatalog, ProgrammeCatalog
from learnsync.repos.store import InMemoryStore, ProgressStore
from learnsync.services.job_guard import InMemoryJobGuard, JobGuard, RedisJobGuard
from learnsync.services.reconciliation import Reconciler
from learnsync.services.scheduler import ReconciliationScheduler
from learnsync.services.sync_orchestrator import Clock, SyncOrchestrator, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Container:
    store: ProgressStore
    catalog: ProgrammeCatalog
    guard: JobGuard
    orchestrator: SyncOrchestrator
    reconciler: Reconciler
    scheduler: ReconciliationScheduler


def build_container(
    settings: Settings = SETTINGS,
    *,
    store: ProgressStore | None = None,
    catalog: ProgrammeCatalog | None = None,
    guard: JobGuard | None = None,
    clock: Clock = utc_now,
) -> Container:
    if store is None or catalog is None:
        if async_session_factory is not None:
            store = store or PgStore(async_session_factory)
            catalog = catalog or PgProgrammeCatalog(async_session_factory)
        else:
            store = store or InMemoryStore()
            catalog = catalog or InMemoryProgrammeCatalog()
    if guard is None:
        guard = RedisJobGuard(redis_pool) if redis_pool is not None else InMemoryJobGuard()

    orchestrator = SyncOrchestrator(
        store,
        catalog,
        streak_lookback_days=settings.streak_lookback_days,
        clock=clock,
    )
    reconciler = Reconciler(
        store,
        catalog,
        active_window_days=settings.active_window_days,
        retention_days=settings.retention_days,
        streak_lookback_days=settings.streak_lookback_days,
    )
    scheduler = ReconciliationScheduler(
        reconciler,
        guard,
        daily_cron=settings.daily_cron,
        hourly_cron=settings.hourly_cron,
        weekly_cron=settings.weekly_cron,
        monthly_cron=settings.monthly_cron,
        clock=clock,
    )
    logger.debug(
        "Container built: store=%s catalog=%s guard=%s",
        type(store).__name__,
        type(catalog).__name__,
        type(guard).__name__,
    )
    return Container(
        store=store,
        catalog=catalog,
        guard=guard,
        orchestrator=orchestrator,
        reconciler=reconciler,
        scheduler=scheduler,
    )
