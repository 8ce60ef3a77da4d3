"""Lecture service: video lectures and their attached resources."""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from edunexus.config import settings
from edunexus.errors import NotFound, ValidationError
from edunexus.models.lecture import Lecture, LectureResource, RESOURCE_TYPES
from edunexus.services import authorization as gate
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import BlobStore, IncomingFile
from edunexus.services.course_registry import get_course
from edunexus.services.validation import (
    clean_choice,
    clean_int,
    clean_optional_text,
    clean_text,
    clean_url,
    file_too_large,
)

logger = logging.getLogger(__name__)


def get_lecture_record(db: Session, lecture_id: str) -> Lecture:
    lecture = db.query(Lecture).filter(Lecture.id == lecture_id).first()
    if not lecture:
        raise NotFound("Lecture not found")
    return lecture


def _check_video(video: Optional[IncomingFile]) -> IncomingFile:
    if video is None or not video.data:
        raise ValidationError("Video file is required", field="video")
    if not (video.content_type or "").lower().startswith("video/"):
        raise ValidationError("Only video files are allowed", field="video")
    if video.size > settings.MAX_VIDEO_BYTES:
        raise file_too_large(video.filename, settings.MAX_VIDEO_BYTES, "video")
    return video


def upload_lecture(
    db: Session,
    actor: Actor,
    course_id: str,
    title: str,
    video: Optional[IncomingFile],
    blob_store: BlobStore,
    description: Optional[str] = None,
    order=0,
    is_preview: bool = False,
    notes: Optional[str] = None,
) -> Lecture:
    """Upload a lecture video and attach the lecture to the course.

    Unlike assignment attachments the video is mandatory: an UploadFailed
    from the blob store aborts the whole operation and nothing is written.
    """
    gate.require_role(actor, "instructor")
    course = get_course(db, course_id)
    gate.require(gate.can_manage_course(actor, course), "Not authorized to add lectures to this course")

    title = clean_text(title, "title", min_length=3)
    description = clean_optional_text(description, "description")
    notes = clean_optional_text(notes, "notes")
    order = clean_int(order if order is not None else 0, "order", minimum=0)
    video = _check_video(video)

    lecture_id = str(uuid.uuid4())
    blob = blob_store.upload(
        video.data,
        folder="lectures",
        suggested_id=f"{course.id}_{lecture_id}",
        resource_kind="video",
        content_type=video.content_type,
        filename=video.filename,
    )

    lecture = Lecture(
        id=lecture_id,
        course_id=course.id,
        title=title,
        description=description,
        video_url=blob.url,
        video_storage_id=blob.storage_id,
        duration_seconds=blob.duration_seconds,
        order=order,
        is_preview=bool(is_preview),
        notes=notes,
    )
    course.lectures.append(lecture)
    try:
        db.commit()
    except Exception:
        db.rollback()
        try:
            blob_store.delete(blob.storage_id, resource_kind="video")
        except Exception:
            logger.exception("Failed to free video %s after aborted lecture create", blob.storage_id)
        raise
    db.refresh(lecture)
    return lecture


def list_lectures(db: Session, actor: Actor, course_id: str) -> list[Lecture]:
    """Lectures of a course in display order. Instructor or enrolled students only."""
    course = get_course(db, course_id)
    gate.require(gate.can_view_course_content(actor, course), "Not authorized to view lectures")
    return (
        db.query(Lecture)
        .filter(Lecture.course_id == course.id)
        .order_by(Lecture.order.asc(), Lecture.created_at.asc())
        .all()
    )


_UPDATABLE = {"title", "description", "order", "is_preview", "notes"}


def update_lecture(db: Session, actor: Actor, lecture_id: str, **fields) -> Lecture:
    lecture = get_lecture_record(db, lecture_id)
    gate.require(gate.can_manage_course(actor, lecture.course), "Not authorized to update this lecture")

    unknown = set(fields) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    changes = {}
    if fields.get("title") is not None:
        changes["title"] = clean_text(fields["title"], "title", min_length=3)
    if "description" in fields:
        changes["description"] = clean_optional_text(fields["description"], "description")
    if fields.get("order") is not None:
        changes["order"] = clean_int(fields["order"], "order", minimum=0)
    if fields.get("is_preview") is not None:
        changes["is_preview"] = bool(fields["is_preview"])
    if "notes" in fields:
        changes["notes"] = clean_optional_text(fields["notes"], "notes")

    for key, value in changes.items():
        setattr(lecture, key, value)
    db.commit()
    db.refresh(lecture)
    return lecture


def delete_lecture(db: Session, actor: Actor, lecture_id: str, blob_store: BlobStore) -> None:
    """Free the video, then drop the lecture and the course back-reference.

    A blob store failure is logged and the metadata delete still happens;
    an orphaned blob is preferred over a lecture that cannot be removed.
    """
    lecture = get_lecture_record(db, lecture_id)
    course = lecture.course
    gate.require(gate.can_manage_course(actor, course), "Not authorized to delete this lecture")

    try:
        blob_store.delete(lecture.video_storage_id, resource_kind="video")
    except Exception:
        logger.exception("Failed to delete video %s of lecture %s", lecture.video_storage_id, lecture.id)

    course.lectures.remove(lecture)
    db.commit()


def add_resource(
    db: Session,
    actor: Actor,
    lecture_id: str,
    name: str,
    url: str,
    type: str,
) -> Lecture:
    """Attach a downloadable or linked resource to a lecture."""
    lecture = get_lecture_record(db, lecture_id)
    gate.require(
        gate.can_manage_course(actor, lecture.course),
        "Not authorized to add resources to this lecture",
    )

    resource = LectureResource(
        id=str(uuid.uuid4()),
        name=clean_text(name, "name"),
        url=clean_url(url),
        type=clean_choice(type, "type", RESOURCE_TYPES),
    )
    lecture.resources.append(resource)
    db.commit()
    db.refresh(lecture)
    return lecture
