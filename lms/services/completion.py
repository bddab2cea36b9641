"""Course completion evaluation.

Only eligible lessons count: the lesson is published and so is its
chapter.  Unpublished content never counts toward completion and never
blocks it.  These are pure reads over the progress store.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from lms.models.learning import LessonCompletion
from lms.repos.progress_repo import LessonProgressRepo

# Lessons without a recorded duration count this many minutes toward
# learning time.
DEFAULT_LESSON_MINUTES = 10


@dataclass(frozen=True, slots=True)
class CompletionSummary:
    completed: int
    total: int
    minutes_completed: int = 0

    @property
    def percent(self) -> int:
        return completion_percent(self.completed, self.total)

    @property
    def is_complete(self) -> bool:
        # An empty course is never complete.
        return self.total > 0 and self.completed == self.total


def completion_percent(completed: int, total: int) -> int:
    if total == 0:
        return 0
    return round(completed * 100 / total)


def summarize_lessons(lessons: list[LessonCompletion]) -> CompletionSummary:
    done = [ls for ls in lessons if ls.is_completed]
    return CompletionSummary(
        completed=len(done),
        total=len(lessons),
        minutes_completed=sum(
            ls.duration_minutes or DEFAULT_LESSON_MINUTES for ls in done
        ),
    )


async def summarize(
    progress: LessonProgressRepo, user_id: UUID, course_id: UUID
) -> CompletionSummary:
    return summarize_lessons(await progress.eligible_lessons(user_id, course_id))


async def is_course_complete(
    progress: LessonProgressRepo, user_id: UUID, course_id: UUID
) -> bool:
    return (await summarize(progress, user_id, course_id)).is_complete
