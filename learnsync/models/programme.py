from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class ProgrammeLesson:
    id: UUID
    module_id: UUID
    is_quiz: bool = False


@dataclass(frozen=True, slots=True)
class Programme:
    """Read-only catalog entry.  Lessons are kept in curriculum order."""

    id: UUID
    title: str
    lessons: tuple[ProgrammeLesson, ...] = ()

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def total_modules(self) -> int:
        return len({lesson.module_id for lesson in self.lessons})

    def lesson(self, lesson_id: UUID) -> ProgrammeLesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    def module_lesson_ids(self) -> dict[UUID, frozenset[UUID]]:
        modules: dict[UUID, set[UUID]] = {}
        for lesson in self.lessons:
            modules.setdefault(lesson.module_id, set()).add(lesson.id)
        return {module_id: frozenset(ids) for module_id, ids in modules.items()}

    @staticmethod
    def new(
        *, title: str, modules: list[list[bool]] | None = None
    ) -> Programme:
        """Build a programme with fresh ids.

        ``modules`` lists, per module, one flag per lesson telling whether
        that lesson is a quiz.
        """
        lessons: list[ProgrammeLesson] = []
        for module in modules or []:
            module_id = uuid4()
            lessons.extend(
                ProgrammeLesson(id=uuid4(), module_id=module_id, is_quiz=is_quiz)
                for is_quiz in module
            )
        return Programme(id=uuid4(), title=title, lessons=tuple(lessons))
