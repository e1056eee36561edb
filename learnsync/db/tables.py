"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in learnsync/models/.
Repos convert between rows and dataclasses; nothing outside learnsync/repos
sees a row object.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from learnsync.db.engine import Base

# --- Catalog (read-only for this service) ---


class ProgrammeRow(Base):
    __tablename__ = "programmes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)


class ProgrammeLessonRow(Base):
    __tablename__ = "programme_lessons"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    programme_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programmes.id"), nullable=False, index=True
    )
    module_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_quiz: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# --- Source records ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("student_id", "programme_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    programme_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programmes.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="enrolled"
    )  # enrolled|active|completed|paused|cancelled|expired
    enrolled_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_lessons: Mapped[list[uuid.UUID]] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=[]
    )
    completed_modules: Mapped[list[uuid.UUID]] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=[]
    )
    time_spent_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    progress_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )


class LessonCompletionRow(Base):
    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("student_id", "lesson_id"),
        Index("ix_lesson_completions_student_completed", "student_id", "completed_at"),
        Index("ix_lesson_completions_completed_at", "completed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    programme_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programmes.id"), nullable=False
    )
    module_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    lesson_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programme_lessons.id"), nullable=False
    )
    completed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    time_spent_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    quiz_max_score: Mapped[float | None] = mapped_column(Float, nullable=True)


# --- Aggregate read model ---


class StudentProfileRow(Base):
    __tablename__ = "student_profiles"

    student_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    badges: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=[])
    # lesson id (str) -> best points of the pruned record
    archived_lessons: Mapped[dict[str, int]] = mapped_column(JSONB, nullable=False, default=dict)
    current_learning_streak: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    longest_learning_streak: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_streak_day: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    total_learning_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_active_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    courses_enrolled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    courses_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
