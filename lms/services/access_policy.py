"""Access predicates.

Every function here is total: it answers True or False for any input,
including an anonymous principal (None) and never raises.  Code that
must fail at an authorization boundary uses lms.services.guards instead.
"""

from __future__ import annotations

from lms.models.course import Chapter, Course, Lesson
from lms.models.principal import Principal
from lms.models.user import Role


def _is_admin_or_owner(principal: Principal | None, course: Course) -> bool:
    if principal is None:
        return False
    return principal.is_admin() or principal.owns(course.owner_id)


def can_access_course(principal: Principal | None, course: Course) -> bool:
    """Published courses are public; drafts and archives only to owner/admin."""
    if _is_admin_or_owner(principal, course):
        return True
    return course.is_published


def can_edit_course(principal: Principal | None, course: Course | None) -> bool:
    if principal is None or course is None:
        return False
    if principal.is_admin():
        return True
    return principal.role is Role.INSTRUCTOR and principal.owns(course.owner_id)


def can_create_course(principal: Principal | None) -> bool:
    return principal is not None and principal.role.is_at_least(Role.INSTRUCTOR)


def can_enroll_in_course(
    principal: Principal | None, course: Course, is_enrolled: bool
) -> bool:
    if principal is None:
        return False
    if principal.owns(course.owner_id):
        return False
    if not course.is_published:
        return False
    return not is_enrolled


def can_view_lesson(
    principal: Principal | None,
    course: Course,
    chapter: Chapter,
    lesson: Lesson,
    is_enrolled: bool,
) -> bool:
    """Whether the lesson body (video, content) may be shown.

    Lesson.is_free opens a lesson to non-enrolled viewers; Chapter.is_free
    plays no part.
    """
    if _is_admin_or_owner(principal, course):
        return True
    if not (course.is_published and chapter.is_published and lesson.is_published):
        return False
    return lesson.is_free or is_enrolled
