"""Tests for the authorization gate predicates (no database needed)."""

from types import SimpleNamespace

import pytest

from edunexus.errors import Forbidden
from edunexus.services.authorization import (
    Actor,
    can_delete_course,
    can_grade_or_manage_assignment,
    can_manage_course,
    can_submit,
    can_view_course_content,
    require,
    require_role,
)

INSTRUCTOR = Actor(user_id="i1", role="instructor")
STUDENT = Actor(user_id="s1", role="student")
OUTSIDER = Actor(user_id="s2", role="student")
ADMIN = Actor(user_id="a1", role="admin")


def _course(instructor_id="i1", students=("s1",)):
    return SimpleNamespace(
        instructor_id=instructor_id,
        enrollments=[SimpleNamespace(student_id=s) for s in students],
    )


class TestCoursePredicates:
    def test_manage_is_owner_only(self):
        assert can_manage_course(INSTRUCTOR, _course())
        assert not can_manage_course(Actor("i2", "instructor"), _course())
        assert not can_manage_course(STUDENT, _course())

    def test_view_content(self):
        """Instructor and enrolled students may view; everyone else is denied."""
        course = _course()
        assert can_view_course_content(INSTRUCTOR, course)
        assert can_view_course_content(STUDENT, course)
        assert not can_view_course_content(OUTSIDER, course)
        assert not can_view_course_content(ADMIN, course)

    def test_submit_needs_student_role_and_enrollment(self):
        course = _course(students=("s1", "i9"))
        assert can_submit(STUDENT, course)
        assert not can_submit(OUTSIDER, course)
        # Enrolled but not a student.
        assert not can_submit(Actor("i9", "instructor"), course)

    def test_delete_owner_or_admin(self):
        course = _course()
        assert can_delete_course(INSTRUCTOR, course)
        assert can_delete_course(ADMIN, course)
        assert not can_delete_course(STUDENT, course)


class TestAssignmentPredicate:
    def test_uses_snapshot_not_course(self):
        """Grading rights follow assignment.instructor_id even if the course moved on."""
        assignment = SimpleNamespace(instructor_id="i1", course=_course(instructor_id="i2"))
        assert can_grade_or_manage_assignment(INSTRUCTOR, assignment)
        assert not can_grade_or_manage_assignment(Actor("i2", "instructor"), assignment)


class TestRequire:
    def test_require_raises_forbidden(self):
        with pytest.raises(Forbidden, match="nope"):
            require(False, "nope")
        require(True, "unused")

    def test_require_role(self):
        require_role(STUDENT, "student")
        with pytest.raises(Forbidden):
            require_role(STUDENT, "instructor")
