"""Assignment service: assignments, submissions and the grading state machine.

Submission lifecycle:

    (submit) ──> submitted ──┐
         └────> late ────────┴──(grade)──> graded ──(grade)──> graded

Deadline policy:
    1. Admission: a submit request evaluated after ``due_date`` is rejected
       with ValidationError before anything is uploaded or written. Late
       submissions are never accepted.
    2. Status: an admitted submission takes its status from the clock read
       right before the row is persisted, after every attachment upload has
       finished: ``late`` if that instant is past ``due_date``, otherwise
       ``submitted``. ``late`` therefore only appears when uploads straddle
       the deadline.

One submission per (assignment, student) is enforced by the
``uq_submission_assignment_student`` unique constraint; the in-memory scan
is only a fast path that saves uploading files for a doomed request.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from edunexus.config import settings
from edunexus.errors import Conflict, NotFound, UploadFailed, ValidationError
from edunexus.models.assignment import Assignment, Submission
from edunexus.services import authorization as gate
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore, IncomingFile
from edunexus.services.course_registry import get_course
from edunexus.services.validation import (
    as_utc,
    clean_number,
    clean_optional_text,
    clean_text,
    file_too_large,
    parse_datetime,
    too_many_files,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_MARKS = 100.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_past_due(assignment: Assignment, now: datetime) -> bool:
    return now > as_utc(assignment.due_date)


def _find_submission(assignment: Assignment, student_id: str) -> Optional[Submission]:
    for submission in assignment.submissions:
        if submission.student_id == student_id:
            return submission
    return None


def get_assignment_record(db: Session, assignment_id: str) -> Assignment:
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise NotFound("Assignment not found")
    return assignment


# ── Assignment CRUD ─────────────────────────────────────────────────────────


def create_assignment(
    db: Session,
    actor: Actor,
    course_id: str,
    title: str,
    description: str,
    due_date,
    max_marks=None,
) -> Assignment:
    """Create an assignment on a course the actor teaches.

    The row and the course's back-reference (the ``course_id`` foreign key
    behind ``Course.assignments``) are committed together.
    """
    gate.require_role(actor, "instructor")
    course = get_course(db, course_id)
    gate.require(
        gate.can_manage_course(actor, course),
        "Not authorized to create assignments for this course",
    )

    assignment = Assignment(
        id=str(uuid.uuid4()),
        course_id=course.id,
        instructor_id=course.instructor_id,
        title=clean_text(title, "title", min_length=3),
        description=clean_text(description, "description", min_length=10),
        due_date=parse_datetime(due_date, "due_date"),
        max_marks=DEFAULT_MAX_MARKS if max_marks is None
        else clean_number(max_marks, "max_marks", minimum=0, strict_minimum=True),
    )
    course.assignments.append(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def list_assignments(db: Session, actor: Actor, course_id: str) -> list[Assignment]:
    """Assignments of a course, newest first. Instructor or enrolled students only."""
    course = get_course(db, course_id)
    gate.require(gate.can_view_course_content(actor, course), "Not authorized to view assignments")
    return (
        db.query(Assignment)
        .filter(Assignment.course_id == course.id)
        .order_by(Assignment.created_at.desc())
        .all()
    )


def get_assignment(db: Session, actor: Actor, assignment_id: str) -> Assignment:
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_view_course_content(actor, assignment.course),
        "Not authorized to view this assignment",
    )
    return assignment


_UPDATABLE = {"title", "description", "due_date", "max_marks"}


def update_assignment(db: Session, actor: Actor, assignment_id: str, **fields) -> Assignment:
    """Partial update by the assignment's instructor.

    ``course_id`` and ``instructor_id`` are fixed at creation and cannot be
    changed here.
    """
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_grade_or_manage_assignment(actor, assignment),
        "Not authorized to update this assignment",
    )

    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    changes = {}
    if fields.get("title") is not None:
        changes["title"] = clean_text(fields["title"], "title", min_length=3)
    if fields.get("description") is not None:
        changes["description"] = clean_text(fields["description"], "description", min_length=10)
    if fields.get("due_date") is not None:
        changes["due_date"] = parse_datetime(fields["due_date"], "due_date")
    if fields.get("max_marks") is not None:
        changes["max_marks"] = clean_number(fields["max_marks"], "max_marks", minimum=0, strict_minimum=True)

    for key, value in changes.items():
        setattr(assignment, key, value)
    db.commit()
    db.refresh(assignment)
    return assignment


def delete_assignment(
    db: Session,
    actor: Actor,
    assignment_id: str,
    blob_store: Optional[BlobStore] = None,
) -> None:
    """Delete an assignment, its submissions and the course back-reference.

    All three go in one transaction. Attachment blobs are freed afterwards;
    failures there are logged and leave the blob orphaned.
    """
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_grade_or_manage_assignment(actor, assignment),
        "Not authorized to delete this assignment",
    )

    storage_ids = [
        attachment["storage_id"]
        for submission in assignment.submissions
        for attachment in (submission.attachments or [])
        if attachment.get("storage_id")
    ]
    assignment.course.assignments.remove(assignment)
    db.commit()

    if blob_store is not None:
        _free_blobs(blob_store, storage_ids)


# ── Submissions ─────────────────────────────────────────────────────────────


def _check_files(files: Sequence[IncomingFile]) -> None:
    if len(files) > settings.MAX_ASSIGNMENT_FILES:
        raise too_many_files(settings.MAX_ASSIGNMENT_FILES)
    for f in files:
        if f.size > settings.MAX_ASSIGNMENT_FILE_BYTES:
            raise file_too_large(f.filename, settings.MAX_ASSIGNMENT_FILE_BYTES, "files")


def _upload_attachments(
    blob_store: BlobStore,
    assignment: Assignment,
    student_id: str,
    files: Sequence[IncomingFile],
) -> list[dict]:
    """Upload each file on its own. A failed file is logged and left out."""
    attachments = []
    for index, f in enumerate(files):
        try:
            blob = blob_store.upload(
                f.data,
                folder="assignments",
                suggested_id=f"{assignment.id}_{student_id}_{uuid.uuid4().hex[:8]}_{index}",
                resource_kind="auto",
                content_type=f.content_type,
                filename=f.filename,
            )
        except UploadFailed as e:
            logger.warning(
                "Attachment '%s' for assignment %s dropped: %s", f.filename, assignment.id, e
            )
            continue
        except Exception:
            logger.exception(
                "Attachment '%s' for assignment %s dropped after unexpected error",
                f.filename,
                assignment.id,
            )
            continue
        attachments.append({
            "name": f.filename,
            "url": blob.url,
            "content_type": blob.content_type or f.content_type,
            "storage_id": blob.storage_id,
        })
    return attachments


def _free_blobs(blob_store: BlobStore, storage_ids: Sequence[str]) -> None:
    for storage_id in storage_ids:
        try:
            blob_store.delete(storage_id, resource_kind="auto")
        except Exception:
            logger.exception("Failed to delete blob %s", storage_id)


def submit_assignment(
    db: Session,
    actor: Actor,
    assignment_id: str,
    content: str,
    files: Sequence[IncomingFile],
    blob_store: BlobStore,
) -> Submission:
    """Record the calling student's one submission for an assignment.

    Steps:
    1. Look up the assignment, check the actor may submit to its course
    2. Validate content and files
    3. Reject duplicates (fast path) and past-due requests
    4. Upload attachments; individual failures are dropped
    5. Compute status from the clock and insert under the unique constraint
    """
    gate.require_role(actor, "student")
    assignment = get_assignment_record(db, assignment_id)
    gate.require(gate.can_submit(actor, assignment.course), "Not enrolled in this course")

    content = clean_text(content, "content")
    files = list(files or [])
    _check_files(files)

    if _find_submission(assignment, actor.user_id) is not None:
        raise Conflict("Assignment already submitted")
    if _is_past_due(assignment, utcnow()):
        raise ValidationError("Assignment submission deadline has passed", field="due_date")

    # Uploads run with no pending writes in the session.
    attachments = _upload_attachments(blob_store, assignment, actor.user_id, files)

    submission = Submission(
        id=str(uuid.uuid4()),
        student_id=actor.user_id,
        content=content,
        attachments=attachments,
        status="late" if _is_past_due(assignment, utcnow()) else "submitted",
    )
    assignment.submissions.append(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Concurrent duplicate submission by %s on assignment %s rejected",
            actor.user_id,
            assignment.id,
        )
        _free_blobs(blob_store, [a["storage_id"] for a in attachments])
        raise Conflict("Assignment already submitted")

    db.refresh(submission)
    return submission


def get_my_submission(db: Session, actor: Actor, assignment_id: str) -> Submission:
    """The calling student's own submission."""
    gate.require_role(actor, "student")
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_view_course_content(actor, assignment.course),
        "Not authorized to view this assignment",
    )
    submission = _find_submission(assignment, actor.user_id)
    if submission is None:
        raise NotFound("Submission not found")
    return submission


def list_submissions(db: Session, actor: Actor, assignment_id: str) -> list[Submission]:
    """All submissions in insertion order, students loaded. Owner only."""
    gate.require_role(actor, "instructor")
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_grade_or_manage_assignment(actor, assignment),
        "Not authorized to view submissions",
    )
    submissions = list(assignment.submissions)
    for submission in submissions:
        _ = submission.student  # resolve identity while the session is open
    return submissions


def grade_submission(
    db: Session,
    actor: Actor,
    assignment_id: str,
    student_id: str,
    marks,
    feedback: Optional[str] = None,
) -> Submission:
    """Grade (or re-grade) a student's submission.

    Any existing submission moves to ``graded``; grading again overwrites
    marks and feedback.
    """
    gate.require_role(actor, "instructor")
    assignment = get_assignment_record(db, assignment_id)
    gate.require(
        gate.can_grade_or_manage_assignment(actor, assignment),
        "Not authorized to grade this assignment",
    )

    marks = clean_number(marks, "marks", minimum=0, maximum=assignment.max_marks)
    feedback = clean_optional_text(feedback, "feedback") or ""

    submission = _find_submission(assignment, student_id)
    if submission is None:
        raise NotFound("Submission not found")

    submission.marks = marks
    submission.feedback = feedback
    submission.status = "graded"
    submission.graded_at = utcnow()
    db.commit()
    db.refresh(submission)
    return submission
