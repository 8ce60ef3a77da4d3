"""Shared fixtures: in-memory database, fake blob store, controllable clock."""

import os
import sys
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before edunexus.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="edunexus-test-"))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edunexus import models  # noqa: F401
from edunexus.database import Base
from edunexus.errors import UploadFailed
from edunexus.models.course import Course, CourseEnrollment
from edunexus.models.user import User
from edunexus.services import assignment_service
from edunexus.services.authorization import Actor
from edunexus.services.blob_store import IncomingFile, StoredBlob


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


class FakeBlobStore:
    """Records uploads/deletes; fails on request."""

    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_filenames = set()
        self.fail_all_uploads = False
        self.fail_deletes = False
        self.on_upload = None

    def upload(self, data, *, folder, suggested_id, resource_kind, content_type, filename):
        if self.on_upload is not None:
            self.on_upload(filename)
        if self.fail_all_uploads or filename in self.fail_filenames:
            raise UploadFailed(f"simulated failure for {filename}")
        storage_id = f"{folder}/{suggested_id}"
        self.uploads.append({
            "storage_id": storage_id,
            "folder": folder,
            "resource_kind": resource_kind,
            "filename": filename,
            "size": len(data),
        })
        return StoredBlob(
            url=f"https://blobs.test/{storage_id}",
            storage_id=storage_id,
            content_type=content_type,
            duration_seconds=42.0 if resource_kind == "video" else None,
        )

    def delete(self, storage_id, *, resource_kind):
        if self.fail_deletes:
            raise UploadFailed(f"simulated delete failure for {storage_id}")
        self.deleted.append(storage_id)


@pytest.fixture
def blob_store():
    return FakeBlobStore()


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock(datetime.now(timezone.utc))
    monkeypatch.setattr(assignment_service, "utcnow", fake)
    return fake


@pytest.fixture
def make_user(db):
    def _make(role="student", name=None):
        suffix = uuid.uuid4().hex[:8]
        user = User(
            id=str(uuid.uuid4()),
            email=f"{role}-{suffix}@edunexus.test",
            password_hash="not-a-real-hash",
            name=name or f"{role.capitalize()} {suffix}",
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_course(db):
    def _make(instructor, students=(), published=True, category="cs", level="beginner"):
        course = Course(
            id=str(uuid.uuid4()),
            instructor_id=instructor.id,
            title="Intro to Programming",
            description="Variables, loops and functions from scratch.",
            category=category,
            level=level,
            is_published=published,
        )
        db.add(course)
        db.flush()
        for student in students:
            db.add(CourseEnrollment(id=str(uuid.uuid4()), course_id=course.id, student_id=student.id))
        db.commit()
        return course

    return _make


@pytest.fixture
def instructor(make_user):
    return make_user("instructor", name="Ada Instructor")


@pytest.fixture
def student(make_user):
    return make_user("student", name="Sam Student")


@pytest.fixture
def course(make_course, instructor, student):
    return make_course(instructor, students=[student])


def actor_of(user) -> Actor:
    return Actor.from_user(user)


def make_file(name="answer.pdf", content_type="application/pdf", data=b"%PDF-1.4 test"):
    return IncomingFile(filename=name, content_type=content_type, data=data)
