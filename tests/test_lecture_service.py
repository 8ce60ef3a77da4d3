"""Tests for lecture upload, listing, update, deletion and resources."""

import pytest

from conftest import actor_of, make_file
from edunexus.errors import Forbidden, NotFound, UploadFailed, ValidationError
from edunexus.models.lecture import Lecture, LectureResource
from edunexus.services import lecture_service


def _video(name="intro.mp4", content_type="video/mp4", data=b"\x00\x00\x00\x18ftypmp42"):
    return make_file(name, content_type, data)


def _upload(db, instructor, course, blob_store, title="Welcome lecture", **kwargs):
    return lecture_service.upload_lecture(
        db,
        actor_of(instructor),
        course_id=course.id,
        title=title,
        video=kwargs.pop("video", _video()),
        blob_store=blob_store,
        **kwargs,
    )


class TestUploadLecture:
    def test_upload_persists_lecture(self, db, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store, order=2, is_preview=True, notes="Slides follow")

        assert lecture.course_id == course.id
        assert lecture.video_url.startswith("https://blobs.test/lectures/")
        assert lecture.video_storage_id == blob_store.uploads[0]["storage_id"]
        assert lecture.duration_seconds == 42.0
        assert lecture.order == 2
        assert lecture.is_preview is True
        assert blob_store.uploads[0]["resource_kind"] == "video"
        db.refresh(course)
        assert [lec.id for lec in course.lectures] == [lecture.id]

    def test_non_video_rejected_before_any_write(self, db, instructor, course, blob_store):
        """A non-video content type never reaches the blob store or the database."""
        with pytest.raises(ValidationError, match="Only video files"):
            _upload(db, instructor, course, blob_store, video=make_file("slides.pdf", "application/pdf"))
        assert blob_store.uploads == []
        assert db.query(Lecture).count() == 0

    def test_video_is_required(self, db, instructor, course, blob_store):
        with pytest.raises(ValidationError, match="Video file is required"):
            _upload(db, instructor, course, blob_store, video=None)

    def test_upload_failure_aborts(self, db, instructor, course, blob_store):
        """Unlike assignment attachments, a failed video upload fails the operation."""
        blob_store.fail_all_uploads = True
        with pytest.raises(UploadFailed):
            _upload(db, instructor, course, blob_store)
        assert db.query(Lecture).count() == 0

    def test_short_title_rejected(self, db, instructor, course, blob_store):
        with pytest.raises(ValidationError):
            _upload(db, instructor, course, blob_store, title="Hi")
        assert blob_store.uploads == []

    def test_other_instructor_forbidden(self, db, make_user, course, blob_store):
        with pytest.raises(Forbidden):
            _upload(db, make_user("instructor"), course, blob_store)
        assert blob_store.uploads == []

    def test_unknown_course(self, db, instructor, blob_store):
        with pytest.raises(NotFound):
            lecture_service.upload_lecture(
                db, actor_of(instructor), "missing", "Welcome", _video(), blob_store
            )


class TestListLectures:
    def test_sorted_by_order(self, db, instructor, student, course, blob_store):
        third = _upload(db, instructor, course, blob_store, title="Third", order=3)
        first = _upload(db, instructor, course, blob_store, title="First", order=1)
        second = _upload(db, instructor, course, blob_store, title="Second", order=2)

        listed = lecture_service.list_lectures(db, actor_of(student), course.id)
        assert [lec.id for lec in listed] == [first.id, second.id, third.id]

    def test_outsider_denied(self, db, make_user, instructor, course, blob_store):
        _upload(db, instructor, course, blob_store)
        with pytest.raises(Forbidden):
            lecture_service.list_lectures(db, actor_of(make_user("student")), course.id)


class TestUpdateLecture:
    def test_partial_update(self, db, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        updated = lecture_service.update_lecture(
            db, actor_of(instructor), lecture.id, order=5, is_preview=True
        )
        assert updated.order == 5
        assert updated.is_preview is True
        assert updated.title == "Welcome lecture"

    def test_negative_order_rejected(self, db, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        with pytest.raises(ValidationError):
            lecture_service.update_lecture(db, actor_of(instructor), lecture.id, order=-1)

    def test_student_forbidden(self, db, instructor, student, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        with pytest.raises(Forbidden):
            lecture_service.update_lecture(db, actor_of(student), lecture.id, title="Mine now")


class TestDeleteLecture:
    def test_delete_frees_video_and_back_reference(self, db, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        storage_id = lecture.video_storage_id

        lecture_service.delete_lecture(db, actor_of(instructor), lecture.id, blob_store)

        assert blob_store.deleted == [storage_id]
        assert db.query(Lecture).count() == 0
        db.refresh(course)
        assert course.lectures == []

    def test_blob_delete_failure_is_not_fatal(self, db, instructor, course, blob_store):
        """An orphaned blob is accepted; the metadata still goes away."""
        lecture = _upload(db, instructor, course, blob_store)
        lecture_service.add_resource(
            db, actor_of(instructor), lecture.id, name="Slides", url="https://example.com/s.pdf", type="pdf"
        )
        blob_store.fail_deletes = True

        lecture_service.delete_lecture(db, actor_of(instructor), lecture.id, blob_store)

        assert db.query(Lecture).count() == 0
        assert db.query(LectureResource).count() == 0

    def test_other_instructor_forbidden(self, db, make_user, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        with pytest.raises(Forbidden):
            lecture_service.delete_lecture(db, actor_of(make_user("instructor")), lecture.id, blob_store)
        assert blob_store.deleted == []


class TestAddResource:
    def test_resource_appended(self, db, instructor, course, blob_store):
        lecture = _upload(db, instructor, course, blob_store)
        updated = lecture_service.add_resource(
            db, actor_of(instructor), lecture.id, name="Reading list", url="https://example.com/read", type="link"
        )
        assert [(r.name, r.type) for r in updated.resources] == [("Reading list", "link")]

    @pytest.mark.parametrize(
        "name, url, type_",
        [
            ("Slides", "https://example.com/s.key", "keynote"),
            ("Slides", "not a url", "pdf"),
            ("   ", "https://example.com/s.pdf", "pdf"),
        ],
    )
    def test_invalid_resource(self, db, instructor, course, blob_store, name, url, type_):
        lecture = _upload(db, instructor, course, blob_store)
        with pytest.raises(ValidationError):
            lecture_service.add_resource(db, actor_of(instructor), lecture.id, name=name, url=url, type=type_)
        assert db.query(LectureResource).count() == 0

    def test_missing_lecture(self, db, instructor):
        with pytest.raises(NotFound):
            lecture_service.add_resource(
                db, actor_of(instructor), "missing", name="x", url="https://example.com", type="link"
            )
