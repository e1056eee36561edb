"""Reconciliation scheduler.

Four named jobs, each with its own cron schedule (UTC) and status object:

  daily_reconciliation         active students: progress, streaks, points
  hourly_streak_refresh        active students: streaks only
  weekly_cleanup               prune completion records past retention
  monthly_full_recalculation   every known student: full rebuild

A run selects its students, then visits them one at a time.  Each student
is its own transaction and its own failure boundary: an error becomes a
ComputationSkipped entry on the report and the run moves on.  The job
guard keeps two runs of the same job from overlapping, across processes
when it is Redis-backed.

APScheduler's AsyncIOScheduler fires the jobs in the worker process; every
job can also be triggered directly (``run_*`` methods, POST /v1/jobs/...).
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from learnsync.core.errors import ComputationSkipped, NotFoundError
from learnsync.core.metrics import (
    JOB_RUNNING,
    RECONCILIATION_DURATION,
    RECONCILIATION_RUNS,
    RECONCILIATION_STUDENTS,
)
from learnsync.services.job_guard import JobGuard
from learnsync.services.reconciliation import Reconciler
from learnsync.services.sync_orchestrator import Clock, utc_now

logger = logging.getLogger(__name__)

DAILY = "daily_reconciliation"
HOURLY = "hourly_streak_refresh"
WEEKLY = "weekly_cleanup"
MONTHLY = "monthly_full_recalculation"

StudentSelector = Callable[[datetime.datetime], Awaitable[list[UUID]]]
StudentStep = Callable[[UUID, datetime.datetime], Awaitable[int]]


@dataclass(frozen=True, slots=True)
class JobReport:
    job: str
    started_at: datetime.datetime
    finished_at: datetime.datetime
    students_processed: int = 0
    students_skipped: int = 0
    records_pruned: int = 0
    skipped: tuple[ComputationSkipped, ...] = ()


@dataclass(slots=True)
class JobStatus:
    name: str
    cron: str
    running: bool = False
    runs: int = 0
    overlaps_skipped: int = 0
    last_started_at: datetime.datetime | None = None
    last_finished_at: datetime.datetime | None = None
    last_outcome: str | None = None
    last_report: JobReport | None = None
    next_run_at: datetime.datetime | None = None


@dataclass(slots=True)
class ScheduledJob:
    name: str
    cron: str
    select: StudentSelector
    step: StudentStep
    trigger: CronTrigger = field(init=False)
    status: JobStatus = field(init=False)

    def __post_init__(self) -> None:
        self.trigger = cron_trigger(self.cron)
        self.status = JobStatus(name=self.name, cron=self.cron)


def cron_trigger(expression: str) -> CronTrigger:
    return CronTrigger.from_crontab(expression, timezone="UTC")


class ReconciliationScheduler:
    def __init__(
        self,
        reconciler: Reconciler,
        guard: JobGuard,
        *,
        daily_cron: str = "0 2 * * *",
        hourly_cron: str = "0 * * * *",
        weekly_cron: str = "0 3 * * sun",
        monthly_cron: str = "0 4 1 * *",
        clock: Clock = utc_now,
    ) -> None:
        self._guard = guard
        self._clock = clock
        self._scheduler: AsyncIOScheduler | None = None
        r = reconciler
        self._jobs: dict[str, ScheduledJob] = {
            job.name: job
            for job in (
                ScheduledJob(DAILY, daily_cron, r.active_students, r.recalculate_student),
                ScheduledJob(HOURLY, hourly_cron, r.active_students, r.refresh_streaks),
                ScheduledJob(WEEKLY, weekly_cron, r.students_with_stale_records, r.prune_student),
                ScheduledJob(MONTHLY, monthly_cron, r.all_students, r.recalculate_student),
            )
        }

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def run_daily_reconciliation(self) -> JobReport | None:
        return await self.run(DAILY)

    async def run_hourly_streak_refresh(self) -> JobReport | None:
        return await self.run(HOURLY)

    async def run_weekly_cleanup(self) -> JobReport | None:
        return await self.run(WEEKLY)

    async def run_monthly_full_recalculation(self) -> JobReport | None:
        return await self.run(MONTHLY)

    async def run(self, name: str) -> JobReport | None:
        """Run one job now.  Returns None when a run is already in progress."""
        job = self._jobs.get(name)
        if job is None:
            raise NotFoundError("job", name)

        token = await self._guard.acquire(name)
        if token is None:
            job.status.overlaps_skipped += 1
            job.status.last_outcome = "skipped_overlap"
            RECONCILIATION_RUNS.labels(job=name, outcome="skipped_overlap").inc()
            logger.warning("Job already running, skipping this run", extra={"job": name})
            return None

        try:
            return await self._execute(job)
        finally:
            await self._guard.release(name, token)

    async def _execute(self, job: ScheduledJob) -> JobReport:
        status = job.status
        started_at = self._clock()
        start = time.perf_counter()
        status.running = True
        status.last_started_at = started_at
        JOB_RUNNING.labels(job=job.name).set(1)
        logger.info("Job started", extra={"job": job.name})

        processed = 0
        pruned = 0
        skipped: list[ComputationSkipped] = []
        try:
            for student_id in await self._select(job, started_at):
                try:
                    pruned += await job.step(student_id, started_at)
                except Exception as e:
                    skipped.append(ComputationSkipped(job.name, student_id, e))
                    RECONCILIATION_STUDENTS.labels(job=job.name, result="skipped").inc()
                    logger.exception(
                        "Student skipped",
                        extra={"job": job.name, "student_id": str(student_id)},
                    )
                else:
                    processed += 1
                    RECONCILIATION_STUDENTS.labels(job=job.name, result="ok").inc()
        finally:
            status.running = False
            JOB_RUNNING.labels(job=job.name).set(0)
            RECONCILIATION_DURATION.labels(job=job.name).observe(time.perf_counter() - start)

        report = JobReport(
            job=job.name,
            started_at=started_at,
            finished_at=self._clock(),
            students_processed=processed,
            students_skipped=len(skipped),
            records_pruned=pruned,
            skipped=tuple(skipped),
        )
        status.runs += 1
        status.last_finished_at = report.finished_at
        status.last_outcome = "completed"
        status.last_report = report
        RECONCILIATION_RUNS.labels(job=job.name, outcome="completed").inc()
        logger.info(
            "Job finished: processed=%d skipped=%d pruned=%d",
            processed,
            len(skipped),
            pruned,
            extra={"job": job.name},
        )
        return report

    async def _select(self, job: ScheduledJob, now: datetime.datetime) -> list[UUID]:
        """Pick the run's students.  A failure here fails the whole run."""
        try:
            return await job.select(now)
        except Exception:
            job.status.last_outcome = "failed"
            job.status.last_finished_at = self._clock()
            RECONCILIATION_RUNS.labels(job=job.name, outcome="failed").inc()
            logger.exception("Job failed selecting students", extra={"job": job.name})
            raise

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def job_names(self) -> list[str]:
        return list(self._jobs)

    def job_statuses(self) -> list[JobStatus]:
        now = self._clock()
        for job in self._jobs.values():
            job.status.next_run_at = job.trigger.get_next_fire_time(None, now)
        return [job.status for job in self._jobs.values()]

    def job_status(self, name: str) -> JobStatus:
        job = self._jobs.get(name)
        if job is None:
            raise NotFoundError("job", name)
        return job.status

    # ------------------------------------------------------------------
    # APScheduler wiring
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Register the cron jobs and start firing them on the running loop."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        for job in self._jobs.values():
            self._scheduler.add_job(
                self.run,
                job.trigger,
                args=[job.name],
                id=job.name,
                name=job.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._scheduler.start()
        logger.info("Scheduler started with jobs: %s", ", ".join(self._jobs))

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self._scheduler = None
