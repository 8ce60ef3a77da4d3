"""Authorization gate: pure predicates over (actor, resource).

Every service operation looks its resource up first, then asks one of these
predicates before it validates or mutates anything. None of them touch the
database; callers pass ORM objects that are already loaded.
"""

from dataclasses import dataclass

from edunexus.errors import Forbidden


@dataclass(frozen=True)
class Actor:
    """Identity resolved for a request: who is calling and in which role."""

    user_id: str
    role: str  # admin | instructor | student

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)

    @property
    def is_student(self) -> bool:
        return self.role == "student"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def is_enrolled(course, user_id: str) -> bool:
    return any(e.student_id == user_id for e in course.enrollments)


def can_manage_course(actor: Actor, course) -> bool:
    return actor.user_id == course.instructor_id


def can_grade_or_manage_assignment(actor: Actor, assignment) -> bool:
    # The stored snapshot decides, not the course's current instructor.
    return actor.user_id == assignment.instructor_id


def can_view_course_content(actor: Actor, course) -> bool:
    return can_manage_course(actor, course) or is_enrolled(course, actor.user_id)


def can_submit(actor: Actor, course) -> bool:
    return actor.is_student and is_enrolled(course, actor.user_id)


def can_delete_course(actor: Actor, course) -> bool:
    return actor.is_admin or can_manage_course(actor, course)


def require(allowed: bool, message: str) -> None:
    """Raise Forbidden unless ``allowed``."""
    if not allowed:
        raise Forbidden(message)


def require_role(actor: Actor, role: str) -> None:
    if actor.role != role:
        raise Forbidden(f"{role.capitalize()} role required")
