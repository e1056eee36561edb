"""Per-student recomputation steps used by the scheduled jobs.

Every step runs in its own transaction and rebuilds aggregates from source
records with the same derivations the live path uses.  Running a step
twice leaves the same state as running it once.
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from uuid import UUID

from learnsync.core.errors import NotFoundError
from learnsync.core.metrics import COMPLETIONS_PRUNED
from learnsync.models.completion import LessonCompletion
from learnsync.models.profile import StreakBlock, StudentProfile
from learnsync.repos.programme_catalog import ProgrammeCatalog
from learnsync.repos.store import ProgressStore
from learnsync.services.aggregates import rebuild_profile
from learnsync.services.points import archive_records, total_points
from learnsync.services.progress import recompute_progress
from learnsync.services.streaks import calculate_streaks, merge_with_stored, utc_today

logger = logging.getLogger(__name__)


class Reconciler:
    def __init__(
        self,
        store: ProgressStore,
        catalog: ProgrammeCatalog,
        *,
        active_window_days: int = 30,
        retention_days: int = 182,
        streak_lookback_days: int = 400,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._active_window = datetime.timedelta(days=active_window_days)
        self._retention = datetime.timedelta(days=retention_days)
        self._lookback = datetime.timedelta(days=streak_lookback_days)

    # ------------------------------------------------------------------
    # Student selection
    # ------------------------------------------------------------------

    async def active_students(self, now: datetime.datetime) -> list[UUID]:
        async with self._store.transaction() as repos:
            return await repos.completions.student_ids_active_since(now - self._active_window)

    async def all_students(self, now: datetime.datetime) -> list[UUID]:
        async with self._store.transaction() as repos:
            ids = set(await repos.profiles.list_student_ids())
            ids.update(await repos.enrollments.list_student_ids())
        return sorted(ids, key=str)

    async def students_with_stale_records(self, now: datetime.datetime) -> list[UUID]:
        async with self._store.transaction() as repos:
            return await repos.completions.student_ids_with_records_before(
                self.retention_cutoff(now)
            )

    def retention_cutoff(self, now: datetime.datetime) -> datetime.datetime:
        return now - self._retention

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def recalculate_student(self, student_id: UUID, now: datetime.datetime) -> int:
        """Rebuild progress, streaks, points and statistics from source."""
        async with self._store.transaction() as repos:
            enrollments = await repos.enrollments.list_by_student(student_id, for_update=True)
            profile = await repos.profiles.get(student_id, for_update=True)
            profile = profile or StudentProfile.new(student_id=student_id)
            records = await repos.completions.list_by_student(student_id)

            lessons_by_programme: dict[UUID, set[UUID]] = defaultdict(set)
            for r in records:
                lessons_by_programme[r.programme_id].add(r.lesson_id)

            updated = []
            for enrollment in enrollments:
                programme = await self._catalog.get(enrollment.programme_id)
                if programme is None:
                    raise NotFoundError("programme", enrollment.programme_id)
                recomputed = recompute_progress(
                    enrollment,
                    programme,
                    now,
                    extra_lessons=lessons_by_programme.get(enrollment.programme_id, ()),
                )
                if recomputed != enrollment:
                    await repos.enrollments.save(recomputed)
                updated.append(recomputed)

            profile = rebuild_profile(
                profile,
                enrollments=updated,
                streaks=_merged_streaks(profile, records, now),
                total_points=total_points(records, profile.gamification.archived_lessons),
            )
            await repos.profiles.save(profile)
        return 0

    async def refresh_streaks(self, student_id: UUID, now: datetime.datetime) -> int:
        async with self._store.transaction() as repos:
            enrollments = await repos.enrollments.list_by_student(student_id)
            profile = await repos.profiles.get(student_id, for_update=True)
            profile = profile or StudentProfile.new(student_id=student_id)
            records = await repos.completions.list_by_student(
                student_id, since=now - self._lookback
            )
            profile = rebuild_profile(
                profile,
                enrollments=enrollments,
                streaks=_merged_streaks(profile, records, now),
            )
            await repos.profiles.save(profile)
        return 0

    async def prune_student(self, student_id: UUID, now: datetime.datetime) -> int:
        """Delete records older than the retention window.

        The best points of each deleted record move into ``archived_lessons`` and
        the streak block is refreshed from the full history first, in the
        same transaction as the delete.
        """
        cutoff = self.retention_cutoff(now)
        async with self._store.transaction() as repos:
            enrollments = await repos.enrollments.list_by_student(student_id, for_update=True)
            profile = await repos.profiles.get(student_id, for_update=True)
            profile = profile or StudentProfile.new(student_id=student_id)
            records = await repos.completions.list_by_student(student_id)

            stale = [r for r in records if r.completed_at < cutoff]
            if not stale:
                return 0
            archived = archive_records(profile.gamification.archived_lessons, stale)
            streaks = _merged_streaks(profile, records, now)
            points = total_points(records, profile.gamification.archived_lessons)

            deleted = await repos.completions.delete_by_student_before(student_id, cutoff)
            profile = rebuild_profile(
                profile,
                enrollments=enrollments,
                streaks=streaks,
                total_points=points,
                archived_lessons=archived,
            )
            await repos.profiles.save(profile)

        COMPLETIONS_PRUNED.inc(deleted)
        logger.debug(
            "Pruned %d completion records", deleted, extra={"student_id": str(student_id)}
        )
        return deleted


def _merged_streaks(
    profile: StudentProfile, records: list[LessonCompletion], now: datetime.datetime
) -> StreakBlock:
    computed = calculate_streaks((r.completed_at for r in records), utc_today(now))
    return merge_with_stored(computed, profile.gamification.streaks)
