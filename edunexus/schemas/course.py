"""Course request/response schemas."""

from typing import Optional
from pydantic import BaseModel

from edunexus.schemas.auth import UserSummary


class CourseCreate(BaseModel):
    title: str
    description: str
    category: str
    level: str  # beginner | intermediate | advanced
    price: float = 0.0
    is_published: bool = False


class CourseUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    price: Optional[float] = None
    is_published: Optional[bool] = None


class LectureSummary(BaseModel):
    id: str
    title: str
    order: int
    duration_seconds: Optional[float] = None
    is_preview: bool
    video_url: Optional[str] = None  # preview lectures only


class AssignmentSummary(BaseModel):
    id: str
    title: str
    due_date: str
    max_marks: float


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    level: str
    price: float
    is_published: bool
    instructor: UserSummary
    students_count: int = 0
    lectures_count: int = 0
    assignments_count: int = 0
    created_at: str

    class Config:
        from_attributes = True


class CourseDetailResponse(CourseResponse):
    lectures: list[LectureSummary] = []
    assignments: list[AssignmentSummary] = []


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    total_pages: int
    current_page: int
    total: int


class MyCoursesResponse(BaseModel):
    enrolled_courses: list[CourseResponse]
    created_courses: list[CourseResponse]


class EnrollmentResponse(BaseModel):
    message: str
    course_id: str
    enrolled_at: str


class ReconcileResponse(BaseModel):
    assignments_removed: int
    lectures_removed: int
    enrollments_removed: int
