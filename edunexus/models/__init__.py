"""SQLAlchemy ORM models."""

from edunexus.models.user import User
from edunexus.models.course import Course, CourseEnrollment
from edunexus.models.assignment import Assignment, Submission
from edunexus.models.lecture import Lecture, LectureResource

__all__ = [
    "User",
    "Course",
    "CourseEnrollment",
    "Assignment",
    "Submission",
    "Lecture",
    "LectureResource",
]
