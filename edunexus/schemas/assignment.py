"""Assignment and submission request/response schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from edunexus.schemas.auth import UserSummary


class AssignmentCreate(BaseModel):
    course_id: str
    title: str
    description: str
    due_date: datetime
    max_marks: Optional[float] = None


class AssignmentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    max_marks: Optional[float] = None


class GradeRequest(BaseModel):
    student_id: str
    marks: float
    feedback: Optional[str] = None


class AttachmentResponse(BaseModel):
    name: str
    url: str
    content_type: str


class SubmissionResponse(BaseModel):
    id: str
    assignment_id: str
    student: UserSummary
    content: str
    attachments: list[AttachmentResponse] = []
    status: str  # submitted | late | graded
    marks: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[str] = None
    created_at: str


class AssignmentResponse(BaseModel):
    id: str
    course_id: str
    instructor_id: str
    title: str
    description: str
    due_date: str
    max_marks: float
    submissions_count: int = 0
    created_at: str

    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    assignments: list[AssignmentResponse]
    total: int


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int
