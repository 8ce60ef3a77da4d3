"""Lectures router: video upload, listing, and resources."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from edunexus.config import settings
from edunexus.database import get_db
from edunexus.middleware.auth import get_current_actor
from edunexus.models.lecture import Lecture
from edunexus.schemas.lecture import (
    LectureListResponse,
    LectureResponse,
    LectureUpdate,
    ResourceCreate,
    ResourceResponse,
)
from edunexus.services import lecture_service
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore, get_blob_store, read_upload
from edunexus.services.validation import to_iso

router = APIRouter(prefix="/api/lectures", tags=["lectures"])


def _lecture_to_response(lecture: Lecture) -> LectureResponse:
    return LectureResponse(
        id=lecture.id,
        course_id=lecture.course_id,
        title=lecture.title,
        description=lecture.description,
        video_url=lecture.video_url,
        duration_seconds=lecture.duration_seconds,
        order=lecture.order,
        is_preview=lecture.is_preview,
        notes=lecture.notes,
        resources=[
            ResourceResponse(id=r.id, name=r.name, url=r.url, type=r.type)
            for r in lecture.resources
        ],
        created_at=to_iso(lecture.created_at),
    )


@router.post("", response_model=LectureResponse, status_code=201)
def upload_lecture(
    course_id: str = Form(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    order: int = Form(0),
    is_preview: bool = Form(False),
    notes: Optional[str] = Form(None),
    video: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Upload a lecture video (course instructor only)."""
    incoming = None
    if video is not None:
        incoming = read_upload(video, limit=settings.MAX_VIDEO_BYTES, field="video", default_name="video")
    lecture = lecture_service.upload_lecture(
        db,
        actor,
        course_id=course_id,
        title=title,
        video=incoming,
        blob_store=blob_store,
        description=description,
        order=order,
        is_preview=is_preview,
        notes=notes,
    )
    return _lecture_to_response(lecture)


@router.get("/course/{course_id}", response_model=LectureListResponse)
def list_lectures(
    course_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List a course's lectures in display order (instructor or enrolled students)."""
    lectures = lecture_service.list_lectures(db, actor, course_id)
    return LectureListResponse(
        lectures=[_lecture_to_response(lec) for lec in lectures],
        total=len(lectures),
    )


@router.put("/{lecture_id}", response_model=LectureResponse)
def update_lecture(
    lecture_id: str,
    req: LectureUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    lecture = lecture_service.update_lecture(db, actor, lecture_id, **req.model_dump(exclude_unset=True))
    return _lecture_to_response(lecture)


@router.delete("/{lecture_id}", status_code=204)
def delete_lecture(
    lecture_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    blob_store: BlobStore = Depends(get_blob_store),
):
    lecture_service.delete_lecture(db, actor, lecture_id, blob_store=blob_store)


@router.post("/{lecture_id}/resources", response_model=LectureResponse)
def add_resource(
    lecture_id: str,
    req: ResourceCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Attach a resource (pdf, doc, ppt, link, other) to a lecture."""
    lecture = lecture_service.add_resource(
        db, actor, lecture_id, name=req.name, url=req.url, type=req.type
    )
    return _lecture_to_response(lecture)
