"""Assignments router: assignment CRUD, submission, and grading."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from edunexus.config import settings
from edunexus.database import get_db
from edunexus.middleware.auth import get_current_actor
from edunexus.models.assignment import Assignment, Submission
from edunexus.schemas.assignment import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentUpdate,
    AttachmentResponse,
    GradeRequest,
    SubmissionListResponse,
    SubmissionResponse,
)
from edunexus.schemas.auth import UserSummary
from edunexus.services import assignment_service
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore, get_blob_store, read_upload
from edunexus.services.validation import to_iso, too_many_files

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


def _assignment_to_response(assignment: Assignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.id,
        course_id=assignment.course_id,
        instructor_id=assignment.instructor_id,
        title=assignment.title,
        description=assignment.description,
        due_date=to_iso(assignment.due_date),
        max_marks=assignment.max_marks,
        submissions_count=len(assignment.submissions),
        created_at=to_iso(assignment.created_at),
    )


def _submission_to_response(submission: Submission) -> SubmissionResponse:
    student = submission.student
    return SubmissionResponse(
        id=submission.id,
        assignment_id=submission.assignment_id,
        student=UserSummary(id=student.id, name=student.name, email=student.email),
        content=submission.content,
        attachments=[
            AttachmentResponse(name=a["name"], url=a["url"], content_type=a["content_type"])
            for a in (submission.attachments or [])
        ],
        status=submission.status,
        marks=submission.marks,
        feedback=submission.feedback,
        graded_at=to_iso(submission.graded_at),
        created_at=to_iso(submission.created_at),
    )


@router.post("", response_model=AssignmentResponse, status_code=201)
def create_assignment(
    req: AssignmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Create an assignment on a course the caller teaches."""
    assignment = assignment_service.create_assignment(
        db,
        actor,
        course_id=req.course_id,
        title=req.title,
        description=req.description,
        due_date=req.due_date,
        max_marks=req.max_marks,
    )
    return _assignment_to_response(assignment)


@router.get("/course/{course_id}", response_model=AssignmentListResponse)
def list_assignments(
    course_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List a course's assignments (instructor or enrolled students)."""
    assignments = assignment_service.list_assignments(db, actor, course_id)
    return AssignmentListResponse(
        assignments=[_assignment_to_response(a) for a in assignments],
        total=len(assignments),
    )


@router.get("/{assignment_id}", response_model=AssignmentResponse)
def get_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    assignment = assignment_service.get_assignment(db, actor, assignment_id)
    return _assignment_to_response(assignment)


@router.post("/{assignment_id}/submit", response_model=SubmissionResponse, status_code=201)
def submit_assignment(
    assignment_id: str,
    content: str = Form(""),
    files: Optional[list[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Submit work for an assignment (enrolled students, once, before the deadline)."""
    files = files or []
    # Count and size limits apply before any body is read into memory.
    if len(files) > settings.MAX_ASSIGNMENT_FILES:
        raise too_many_files(settings.MAX_ASSIGNMENT_FILES)
    incoming = [
        read_upload(f, limit=settings.MAX_ASSIGNMENT_FILE_BYTES, field="files", default_name="attachment")
        for f in files
    ]
    submission = assignment_service.submit_assignment(
        db, actor, assignment_id, content=content, files=incoming, blob_store=blob_store
    )
    return _submission_to_response(submission)


@router.get("/{assignment_id}/my-submission", response_model=SubmissionResponse)
def my_submission(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    submission = assignment_service.get_my_submission(db, actor, assignment_id)
    return _submission_to_response(submission)


@router.get("/{assignment_id}/submissions", response_model=SubmissionListResponse)
def list_submissions(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """All submissions for an assignment (its instructor only)."""
    submissions = assignment_service.list_submissions(db, actor, assignment_id)
    return SubmissionListResponse(
        submissions=[_submission_to_response(s) for s in submissions],
        total=len(submissions),
    )


@router.put("/{assignment_id}/grade", response_model=SubmissionResponse)
def grade_submission(
    assignment_id: str,
    req: GradeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Grade or re-grade a student's submission."""
    submission = assignment_service.grade_submission(
        db,
        actor,
        assignment_id,
        student_id=req.student_id,
        marks=req.marks,
        feedback=req.feedback,
    )
    return _submission_to_response(submission)


@router.put("/{assignment_id}", response_model=AssignmentResponse)
def update_assignment(
    assignment_id: str,
    req: AssignmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    assignment = assignment_service.update_assignment(
        db, actor, assignment_id, **req.model_dump(exclude_unset=True)
    )
    return _assignment_to_response(assignment)


@router.delete("/{assignment_id}", status_code=204)
def delete_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    blob_store: BlobStore = Depends(get_blob_store),
):
    assignment_service.delete_assignment(db, actor, assignment_id, blob_store=blob_store)
