"""Live-path entry point.

Each public coroutine runs one unit of work: the completion write, the
enrollment update and the profile update commit together or not at all.
Row locks are always taken enrollment first, then profile, in the same
order reconciliation uses.
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from uuid import UUID

from learnsync.core.errors import InvalidStateError, NotFoundError, SyncError
from learnsync.core.metrics import SYNC_DURATION, SYNC_EVENTS
from learnsync.models.completion import LessonCompletion
from learnsync.models.enrollment import Enrollment, EnrollmentStatus
from learnsync.models.profile import StudentProfile
from learnsync.repos.programme_catalog import ProgrammeCatalog
from learnsync.repos.store import ProgressStore, Repos
from learnsync.services.aggregates import rebuild_profile
from learnsync.services.completion_recorder import (
    RecordResult,
    record_completion,
    record_quiz,
    resolve_lesson,
)
from learnsync.services.points import points_gained, round_half_up
from learnsync.services.progress import apply_completion, recompute_progress
from learnsync.services.streaks import (
    calculate_streaks,
    current_as_of,
    merge_with_stored,
    utc_today,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]

RECENT_ACTIVITY_LIMIT = 10


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True, slots=True)
class CompletionSyncResult:
    progress: int
    current_streak: int
    longest_streak: int
    points_awarded: int
    total_points: int
    level: int


@dataclass(frozen=True, slots=True)
class QuizSyncResult:
    progress: int
    points_awarded: int
    total_points: int
    level: int


@dataclass(frozen=True, slots=True)
class CourseProgress:
    programme_id: UUID
    status: EnrollmentStatus
    percentage: int
    completed_lessons: int
    time_spent_minutes: int
    last_activity_at: datetime.datetime | None
    completed_at: datetime.datetime | None


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    enrolled_count: int
    active_count: int
    completed_count: int
    average_progress: int
    total_hours_learned: float
    current_streak: int
    longest_streak: int
    total_points: int
    level: int
    badges: tuple[str, ...]
    per_course_progress: tuple[CourseProgress, ...]
    recent_activity: tuple[LessonCompletion, ...]


class SyncOrchestrator:
    def __init__(
        self,
        store: ProgressStore,
        catalog: ProgrammeCatalog,
        *,
        streak_lookback_days: int = 400,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._lookback = datetime.timedelta(days=streak_lookback_days)
        self._clock = clock

    # ------------------------------------------------------------------
    # Completion events
    # ------------------------------------------------------------------

    async def record_completion_and_sync(
        self,
        student_id: UUID,
        programme_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
        time_spent_minutes: int = 0,
    ) -> CompletionSyncResult:
        with _observe("lesson", student_id, programme_id):
            programme, lesson = await resolve_lesson(
                self._catalog, programme_id, lesson_id, module_id
            )
            now = self._clock()
            async with self._store.transaction() as repos:
                enrollment = await self._locked_enrollment(repos, student_id, programme_id)
                result = await record_completion(
                    repos.completions,
                    student_id=student_id,
                    programme_id=programme_id,
                    lesson=lesson,
                    time_spent_minutes=time_spent_minutes,
                    now=now,
                )
                enrollment = apply_completion(enrollment, lesson.id, time_spent_minutes, now)
                enrollment = recompute_progress(enrollment, programme, now)
                await repos.enrollments.save(enrollment)

                profile, awarded = await self._sync_profile(repos, student_id, now, result)

            streaks = profile.gamification.streaks
            logger.info(
                "Lesson completion synced: progress=%d points_awarded=%d",
                enrollment.progress.percentage,
                awarded,
                extra={"student_id": str(student_id), "programme_id": str(programme_id)},
            )
            return CompletionSyncResult(
                progress=enrollment.progress.percentage,
                current_streak=streaks.current_learning_streak,
                longest_streak=streaks.longest_learning_streak,
                points_awarded=awarded,
                total_points=profile.gamification.total_points,
                level=profile.gamification.level,
            )

    async def record_quiz_and_sync(
        self,
        student_id: UUID,
        programme_id: UUID,
        lesson_id: UUID,
        score: float,
        max_score: float,
        time_spent_minutes: int = 0,
    ) -> QuizSyncResult:
        with _observe("quiz", student_id, programme_id):
            programme, lesson = await resolve_lesson(self._catalog, programme_id, lesson_id)
            now = self._clock()
            async with self._store.transaction() as repos:
                enrollment = await self._locked_enrollment(repos, student_id, programme_id)
                result: RecordResult = await record_quiz(
                    repos.completions,
                    student_id=student_id,
                    programme_id=programme_id,
                    lesson=lesson,
                    score=score,
                    max_score=max_score,
                    time_spent_minutes=time_spent_minutes,
                    now=now,
                )
                enrollment = apply_completion(enrollment, lesson.id, time_spent_minutes, now)
                enrollment = recompute_progress(enrollment, programme, now)
                await repos.enrollments.save(enrollment)

                profile, awarded = await self._sync_profile(repos, student_id, now, result)

            logger.info(
                "Quiz synced: progress=%d points_awarded=%d",
                enrollment.progress.percentage,
                awarded,
                extra={"student_id": str(student_id), "programme_id": str(programme_id)},
            )
            return QuizSyncResult(
                progress=enrollment.progress.percentage,
                points_awarded=awarded,
                total_points=profile.gamification.total_points,
                level=profile.gamification.level,
            )

    # ------------------------------------------------------------------
    # Enrollment changes
    # ------------------------------------------------------------------

    async def enroll(self, student_id: UUID, programme_id: UUID) -> Enrollment:
        """Create the enrollment, or return the existing one unchanged."""
        with _observe("enroll", student_id, programme_id):
            if await self._catalog.get(programme_id) is None:
                raise NotFoundError("programme", programme_id)
            now = self._clock()
            async with self._store.transaction() as repos:
                existing = await repos.enrollments.get(student_id, programme_id, for_update=True)
                if existing is not None:
                    return existing

                enrollment = Enrollment.new(
                    student_id=student_id, programme_id=programme_id, enrolled_at=now
                )
                await repos.enrollments.save(enrollment)
                profile = await self._load_profile(repos, student_id)
                enrollments = await repos.enrollments.list_by_student(student_id)
                await repos.profiles.save(rebuild_profile(profile, enrollments=enrollments))

            logger.info(
                "Student enrolled",
                extra={"student_id": str(student_id), "programme_id": str(programme_id)},
            )
            return enrollment

    async def reopen(self, student_id: UUID, programme_id: UUID) -> Enrollment:
        """Move a completed enrollment back to active.

        Only meaningful once the programme has gained lessons: an enrollment
        that would still be at 100% is refused, since the next sync would
        complete it again.
        """
        with _observe("reopen", student_id, programme_id):
            programme = await self._catalog.get(programme_id)
            if programme is None:
                raise NotFoundError("programme", programme_id)
            now = self._clock()
            async with self._store.transaction() as repos:
                enrollment = await self._require_enrollment(
                    repos, student_id, programme_id, for_update=True
                )
                if not enrollment.is_completed:
                    raise InvalidStateError(
                        f"enrollment {enrollment.id} is {enrollment.status.value}, not completed"
                    )
                reopened = recompute_progress(
                    replace(enrollment, status=EnrollmentStatus.ACTIVE, completed_at=None),
                    programme,
                    now,
                )
                if reopened.is_completed:
                    raise InvalidStateError(
                        f"enrollment {enrollment.id} has no lessons left to complete"
                    )
                await repos.enrollments.save(reopened)
                profile = await self._load_profile(repos, student_id)
                enrollments = await repos.enrollments.list_by_student(student_id)
                await repos.profiles.save(rebuild_profile(profile, enrollments=enrollments))

            logger.info(
                "Enrollment reopened",
                extra={"student_id": str(student_id), "programme_id": str(programme_id)},
            )
            return reopened

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    async def get_dashboard_snapshot(self, student_id: UUID) -> DashboardSnapshot:
        today = utc_today(self._clock())
        async with self._store.transaction() as repos:
            profile = await repos.profiles.get(student_id)
            enrollments = await repos.enrollments.list_by_student(student_id)
            recent = await repos.completions.list_by_student(
                student_id, limit=RECENT_ACTIVITY_LIMIT
            )
        if profile is None and not enrollments:
            raise NotFoundError("student", student_id)
        if profile is None:
            profile = StudentProfile.new(student_id=student_id)

        g = profile.gamification
        percentages = [e.progress.percentage for e in enrollments]
        return DashboardSnapshot(
            enrolled_count=len(enrollments),
            active_count=sum(1 for e in enrollments if e.status is EnrollmentStatus.ACTIVE),
            completed_count=sum(1 for e in enrollments if e.is_completed),
            average_progress=(
                round_half_up(sum(percentages) / len(percentages)) if percentages else 0
            ),
            total_hours_learned=round_half_up(profile.statistics.total_learning_hours * 10) / 10,
            current_streak=current_as_of(g.streaks, today),
            longest_streak=g.streaks.longest_learning_streak,
            total_points=g.total_points,
            level=g.level,
            badges=tuple(sorted(g.badges)),
            per_course_progress=tuple(
                CourseProgress(
                    programme_id=e.programme_id,
                    status=e.status,
                    percentage=e.progress.percentage,
                    completed_lessons=len(e.progress.completed_lessons),
                    time_spent_minutes=e.progress.time_spent_minutes,
                    last_activity_at=e.progress.last_activity_at,
                    completed_at=e.completed_at,
                )
                for e in enrollments
            ),
            recent_activity=tuple(recent),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_enrollment(
        self, repos: Repos, student_id: UUID, programme_id: UUID, *, for_update: bool
    ) -> Enrollment:
        enrollment = await repos.enrollments.get(
            student_id, programme_id, for_update=for_update
        )
        if enrollment is None:
            raise NotFoundError("enrollment", f"{student_id}/{programme_id}")
        return enrollment

    async def _locked_enrollment(
        self, repos: Repos, student_id: UUID, programme_id: UUID
    ) -> Enrollment:
        enrollment = await self._require_enrollment(
            repos, student_id, programme_id, for_update=True
        )
        if not enrollment.status.accepts_progress:
            raise InvalidStateError(
                f"enrollment {enrollment.id} is {enrollment.status.value}"
            )
        return enrollment

    async def _load_profile(self, repos: Repos, student_id: UUID) -> StudentProfile:
        profile = await repos.profiles.get(student_id, for_update=True)
        return profile or StudentProfile.new(student_id=student_id)

    async def _sync_profile(
        self, repos: Repos, student_id: UUID, now: datetime.datetime, result: RecordResult
    ) -> tuple[StudentProfile, int]:
        """Patch the profile after one completion event.

        Returns the profile and the points the event earned.  Streaks are
        recomputed from the lookback window only and folded into the stored
        block, so the stored longest streak covers older history.
        """
        profile = await self._load_profile(repos, student_id)
        awarded = points_gained(
            result.previous,
            result.record,
            profile.gamification.archived_lessons.get(result.record.lesson_id, 0),
        )
        recent = await repos.completions.list_by_student(student_id, since=now - self._lookback)
        computed = calculate_streaks((r.completed_at for r in recent), utc_today(now))
        enrollments = await repos.enrollments.list_by_student(student_id)

        profile = rebuild_profile(
            profile,
            enrollments=enrollments,
            streaks=merge_with_stored(computed, profile.gamification.streaks),
            total_points=profile.gamification.total_points + awarded,
        )
        await repos.profiles.save(profile)
        return profile, awarded


@contextmanager
def _observe(kind: str, student_id: UUID, programme_id: UUID) -> Iterator[None]:
    """Time one live-path operation and count its outcome."""
    extra = {"student_id": str(student_id), "programme_id": str(programme_id)}
    start = time.perf_counter()
    try:
        yield
    except SyncError as e:
        SYNC_EVENTS.labels(kind=kind, outcome="error").inc()
        logger.warning("%s event rejected: %s", kind, e, extra=extra)
        raise
    except Exception:
        SYNC_EVENTS.labels(kind=kind, outcome="error").inc()
        logger.exception("%s event failed", kind, extra=extra)
        raise
    else:
        SYNC_EVENTS.labels(kind=kind, outcome="ok").inc()
    finally:
        SYNC_DURATION.labels(kind=kind).observe(time.perf_counter() - start)
