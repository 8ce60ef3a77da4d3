"""Courses router: catalogue, course management, and enrollment."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from edunexus.database import get_db
from edunexus.middleware.auth import get_current_actor
from edunexus.models.course import Course
from edunexus.schemas.auth import UserSummary
from edunexus.schemas.course import (
    AssignmentSummary,
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    EnrollmentResponse,
    LectureSummary,
    MyCoursesResponse,
)
from edunexus.services import course_registry
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore, get_blob_store
from edunexus.services.validation import to_iso

router = APIRouter(prefix="/api/courses", tags=["courses"])


def _course_to_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        category=course.category,
        level=course.level,
        price=course.price,
        is_published=course.is_published,
        instructor=UserSummary(
            id=course.instructor.id,
            name=course.instructor.name,
            email=course.instructor.email,
        ),
        students_count=len(course.enrollments),
        lectures_count=len(course.lectures),
        assignments_count=len(course.assignments),
        created_at=to_iso(course.created_at),
    )


def _course_to_detail(course: Course) -> CourseDetailResponse:
    base = _course_to_response(course)
    lectures = sorted(course.lectures, key=lambda lec: (lec.order, lec.created_at))
    return CourseDetailResponse(
        **base.model_dump(),
        lectures=[
            LectureSummary(
                id=lec.id,
                title=lec.title,
                order=lec.order,
                duration_seconds=lec.duration_seconds,
                is_preview=lec.is_preview,
                video_url=lec.video_url if lec.is_preview else None,
            )
            for lec in lectures
        ],
        assignments=[
            AssignmentSummary(
                id=a.id,
                title=a.title,
                due_date=to_iso(a.due_date),
                max_marks=a.max_marks,
            )
            for a in course.assignments
        ],
    )


@router.get("", response_model=CourseListResponse)
def list_courses(
    category: Optional[str] = Query(None),
    level: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    db: Session = Depends(get_db),
):
    """Public catalogue of published courses."""
    result = course_registry.list_courses(
        db, category=category, level=level, search=search, page=page, limit=limit
    )
    return CourseListResponse(
        courses=[_course_to_response(c) for c in result["courses"]],
        total_pages=result["total_pages"],
        current_page=result["current_page"],
        total=result["total"],
    )


@router.get("/my-courses", response_model=MyCoursesResponse)
def my_courses(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Courses the caller is enrolled in or teaches."""
    result = course_registry.my_courses(db, actor)
    return MyCoursesResponse(
        enrolled_courses=[_course_to_response(c) for c in result["enrolled_courses"]],
        created_courses=[_course_to_response(c) for c in result["created_courses"]],
    )


@router.get("/{course_id}", response_model=CourseDetailResponse)
def get_course(course_id: str, db: Session = Depends(get_db)):
    course = course_registry.get_course(db, course_id)
    return _course_to_detail(course)


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    req: CourseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Create a new course (instructor only)."""
    course = course_registry.create_course(
        db,
        actor,
        title=req.title,
        description=req.description,
        category=req.category,
        level=req.level,
        price=req.price,
        is_published=req.is_published,
    )
    return _course_to_response(course)


@router.put("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    req: CourseUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    course = course_registry.update_course(db, actor, course_id, **req.model_dump(exclude_unset=True))
    return _course_to_response(course)


@router.delete("/{course_id}", status_code=204)
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    blob_store: BlobStore = Depends(get_blob_store),
):
    course_registry.delete_course(db, actor, course_id, blob_store=blob_store)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse)
def enroll(
    course_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Enroll the calling student."""
    enrollment = course_registry.enroll(db, actor, course_id)
    return EnrollmentResponse(
        message="Successfully enrolled in course",
        course_id=enrollment.course_id,
        enrolled_at=to_iso(enrollment.enrolled_at),
    )
