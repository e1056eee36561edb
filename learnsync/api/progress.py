"""Student progress endpoints.

Thin HTTP layer over SyncOrchestrator: request bodies become orchestrator
calls, results become response models.  Domain errors are mapped to status
codes by learnsync/api/errors.py.
"""

from __future__ import annotations

import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from learnsync.api.dependencies import get_orchestrator
from learnsync.models.completion import LessonCompletion
from learnsync.models.enrollment import Enrollment
from learnsync.services.sync_orchestrator import SyncOrchestrator

router = APIRouter(prefix="/v1/students", tags=["progress"])

Orchestrator = Annotated[SyncOrchestrator, Depends(get_orchestrator)]


class CompletionIn(BaseModel):
    programme_id: UUID
    module_id: UUID
    lesson_id: UUID
    time_spent_minutes: int = 0


class QuizIn(BaseModel):
    programme_id: UUID
    lesson_id: UUID
    score: float
    max_score: float
    time_spent_minutes: int = 0


class EnrollIn(BaseModel):
    programme_id: UUID


class CompletionSyncOut(BaseModel):
    progress: int
    current_streak: int
    longest_streak: int
    points_awarded: int
    total_points: int
    level: int


class QuizSyncOut(BaseModel):
    progress: int
    points_awarded: int
    total_points: int
    level: int


class EnrollmentOut(BaseModel):
    id: str
    student_id: str
    programme_id: str
    status: str
    enrolled_at: datetime.datetime
    completed_at: datetime.datetime | None
    percentage: int
    completed_lessons: int
    completed_modules: int
    time_spent_minutes: int
    last_activity_at: datetime.datetime | None


class CourseProgressOut(BaseModel):
    programme_id: str
    status: str
    percentage: int
    completed_lessons: int
    time_spent_minutes: int
    last_activity_at: datetime.datetime | None
    completed_at: datetime.datetime | None


class ActivityOut(BaseModel):
    lesson_id: str
    module_id: str
    programme_id: str
    completed_at: datetime.datetime
    time_spent_minutes: int
    quiz_score: float | None
    quiz_max_score: float | None


class DashboardOut(BaseModel):
    enrolled_count: int
    active_count: int
    completed_count: int
    average_progress: int
    total_hours_learned: float
    current_streak: int
    longest_streak: int
    total_points: int
    level: int
    badges: list[str]
    per_course_progress: list[CourseProgressOut]
    recent_activity: list[ActivityOut]


def _enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=str(e.id),
        student_id=str(e.student_id),
        programme_id=str(e.programme_id),
        status=e.status.value,
        enrolled_at=e.enrolled_at,
        completed_at=e.completed_at,
        percentage=e.progress.percentage,
        completed_lessons=len(e.progress.completed_lessons),
        completed_modules=len(e.progress.completed_modules),
        time_spent_minutes=e.progress.time_spent_minutes,
        last_activity_at=e.progress.last_activity_at,
    )


def _activity_out(r: LessonCompletion) -> ActivityOut:
    return ActivityOut(
        lesson_id=str(r.lesson_id),
        module_id=str(r.module_id),
        programme_id=str(r.programme_id),
        completed_at=r.completed_at,
        time_spent_minutes=r.time_spent_minutes,
        quiz_score=r.quiz_score,
        quiz_max_score=r.quiz_max_score,
    )


@router.post("/{student_id}/completions", response_model=CompletionSyncOut)
async def record_completion(
    student_id: UUID, body: CompletionIn, orchestrator: Orchestrator
) -> CompletionSyncOut:
    result = await orchestrator.record_completion_and_sync(
        student_id,
        body.programme_id,
        body.module_id,
        body.lesson_id,
        body.time_spent_minutes,
    )
    return CompletionSyncOut(
        progress=result.progress,
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
        points_awarded=result.points_awarded,
        total_points=result.total_points,
        level=result.level,
    )


@router.post("/{student_id}/quizzes", response_model=QuizSyncOut)
async def record_quiz(student_id: UUID, body: QuizIn, orchestrator: Orchestrator) -> QuizSyncOut:
    result = await orchestrator.record_quiz_and_sync(
        student_id,
        body.programme_id,
        body.lesson_id,
        body.score,
        body.max_score,
        body.time_spent_minutes,
    )
    return QuizSyncOut(
        progress=result.progress,
        points_awarded=result.points_awarded,
        total_points=result.total_points,
        level=result.level,
    )


@router.post(
    "/{student_id}/enrollments",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(student_id: UUID, body: EnrollIn, orchestrator: Orchestrator) -> EnrollmentOut:
    enrollment = await orchestrator.enroll(student_id, body.programme_id)
    return _enrollment_out(enrollment)


@router.post(
    "/{student_id}/enrollments/{programme_id}/reopen", response_model=EnrollmentOut
)
async def reopen(
    student_id: UUID, programme_id: UUID, orchestrator: Orchestrator
) -> EnrollmentOut:
    enrollment = await orchestrator.reopen(student_id, programme_id)
    return _enrollment_out(enrollment)


@router.get("/{student_id}/dashboard", response_model=DashboardOut)
async def dashboard(student_id: UUID, orchestrator: Orchestrator) -> DashboardOut:
    snap = await orchestrator.get_dashboard_snapshot(student_id)
    return DashboardOut(
        enrolled_count=snap.enrolled_count,
        active_count=snap.active_count,
        completed_count=snap.completed_count,
        average_progress=snap.average_progress,
        total_hours_learned=snap.total_hours_learned,
        current_streak=snap.current_streak,
        longest_streak=snap.longest_streak,
        total_points=snap.total_points,
        level=snap.level,
        badges=list(snap.badges),
        per_course_progress=[
            CourseProgressOut(
                programme_id=str(c.programme_id),
                status=c.status.value,
                percentage=c.percentage,
                completed_lessons=c.completed_lessons,
                time_spent_minutes=c.time_spent_minutes,
                last_activity_at=c.last_activity_at,
                completed_at=c.completed_at,
            )
            for c in snap.per_course_progress
        ],
        recent_activity=[_activity_out(r) for r in snap.recent_activity],
    )
