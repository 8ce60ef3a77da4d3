"""Course registry: course existence, ownership, enrollment and consistency."""

import logging
import math
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edunexus.errors import Conflict, NotFound, ValidationError
from edunexus.models.assignment import Assignment
from edunexus.models.course import Course, CourseEnrollment, LEVELS
from edunexus.models.lecture import Lecture
from edunexus.models.user import User
from edunexus.services import authorization as gate
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore
from edunexus.services.validation import clean_choice, clean_number, clean_text

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def get_course(db: Session, course_id: str) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise NotFound("Course not found")
    return course


def create_course(
    db: Session,
    actor: Actor,
    title: str,
    description: str,
    category: str,
    level: str,
    price: float = 0.0,
    is_published: bool = False,
) -> Course:
    """Create a course owned by the calling instructor."""
    gate.require_role(actor, "instructor")

    course = Course(
        id=str(uuid.uuid4()),
        instructor_id=actor.user_id,
        title=clean_text(title, "title", min_length=3),
        description=clean_text(description, "description", min_length=10),
        category=clean_text(category, "category"),
        level=clean_choice(level, "level", LEVELS),
        price=clean_number(price, "price", minimum=0),
        is_published=bool(is_published),
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def list_courses(
    db: Session,
    category: Optional[str] = None,
    level: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Public catalogue: published courses only, newest first, paginated."""
    page = max(1, page or 1)
    limit = min(MAX_PAGE_SIZE, max(1, limit or 10))

    query = db.query(Course).filter(Course.is_published.is_(True))
    if category:
        query = query.filter(Course.category == category)
    if level:
        query = query.filter(Course.level == level)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))

    total = query.count()
    courses = (
        query.order_by(Course.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "courses": courses,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
    }


def my_courses(db: Session, actor: Actor) -> dict:
    """Courses the actor is enrolled in and courses the actor teaches."""
    enrolled = (
        db.query(Course)
        .join(CourseEnrollment, CourseEnrollment.course_id == Course.id)
        .filter(CourseEnrollment.student_id == actor.user_id)
        .order_by(CourseEnrollment.enrolled_at.desc())
        .all()
    )
    created = (
        db.query(Course)
        .filter(Course.instructor_id == actor.user_id)
        .order_by(Course.created_at.desc())
        .all()
    )
    return {"enrolled_courses": enrolled, "created_courses": created}


_UPDATABLE = {"title", "description", "category", "level", "price", "is_published"}


def update_course(db: Session, actor: Actor, course_id: str, **fields) -> Course:
    """Partial update by the owning instructor."""
    course = get_course(db, course_id)
    gate.require(gate.can_manage_course(actor, course), "Not authorized to update this course")

    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    changes = {}
    if fields.get("title") is not None:
        changes["title"] = clean_text(fields["title"], "title", min_length=3)
    if fields.get("description") is not None:
        changes["description"] = clean_text(fields["description"], "description", min_length=10)
    if fields.get("category") is not None:
        changes["category"] = clean_text(fields["category"], "category")
    if fields.get("level") is not None:
        changes["level"] = clean_choice(fields["level"], "level", LEVELS)
    if fields.get("price") is not None:
        changes["price"] = clean_number(fields["price"], "price", minimum=0)
    if fields.get("is_published") is not None:
        changes["is_published"] = bool(fields["is_published"])

    for key, value in changes.items():
        setattr(course, key, value)
    db.commit()
    db.refresh(course)
    return course


def delete_course(db: Session, actor: Actor, course_id: str, blob_store: Optional[BlobStore] = None) -> None:
    """Delete a course with its assignments, lectures and enrollments.

    Everything below the course goes in one transaction via the ORM cascades.
    Lecture videos and submission attachments are freed afterwards; a
    failure there leaves an orphaned blob and is only logged.
    """
    course = get_course(db, course_id)
    gate.require(gate.can_delete_course(actor, course), "Not authorized to delete this course")

    blobs = [(lecture.video_storage_id, "video") for lecture in course.lectures]
    blobs += [
        (attachment["storage_id"], "auto")
        for assignment in course.assignments
        for submission in assignment.submissions
        for attachment in (submission.attachments or [])
        if attachment.get("storage_id")
    ]
    db.delete(course)
    db.commit()

    if blob_store is None:
        return
    for storage_id, kind in blobs:
        try:
            blob_store.delete(storage_id, resource_kind=kind)
        except Exception:
            logger.exception("Failed to delete blob %s of course %s", storage_id, course_id)


def enroll(db: Session, actor: Actor, course_id: str) -> CourseEnrollment:
    """Enroll the calling student in a published course."""
    gate.require_role(actor, "student")
    course = get_course(db, course_id)

    if not course.is_published:
        raise ValidationError("Course is not published yet")
    if gate.is_enrolled(course, actor.user_id):
        raise Conflict("Already enrolled in this course")

    enrollment = CourseEnrollment(
        id=str(uuid.uuid4()),
        course_id=course.id,
        student_id=actor.user_id,
    )
    db.add(enrollment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Already enrolled in this course")
    db.refresh(enrollment)
    return enrollment


def reconcile_references(db: Session) -> dict:
    """Remove rows that point at a course or user that no longer exists.

    Normal deletes cascade inside one transaction, so this only finds
    leftovers from writes made outside the services (manual SQL, restores,
    databases running without foreign-key enforcement).
    """
    course_ids = select(Course.id)
    user_ids = select(User.id)

    orphan_assignments = db.query(Assignment).filter(Assignment.course_id.not_in(course_ids)).all()
    orphan_lectures = db.query(Lecture).filter(Lecture.course_id.not_in(course_ids)).all()
    orphan_enrollments = (
        db.query(CourseEnrollment)
        .filter(or_(CourseEnrollment.course_id.not_in(course_ids), CourseEnrollment.student_id.not_in(user_ids)))
        .all()
    )

    for row in [*orphan_assignments, *orphan_lectures, *orphan_enrollments]:
        db.delete(row)
    db.commit()

    result = {
        "assignments_removed": len(orphan_assignments),
        "lectures_removed": len(orphan_lectures),
        "enrollments_removed": len(orphan_enrollments),
    }
    logger.info("Reference reconciliation finished: %s", result)
    return result
