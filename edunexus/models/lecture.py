"""Lecture and LectureResource models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from edunexus.database import Base

RESOURCE_TYPES = ("pdf", "doc", "ppt", "link", "other")


class Lecture(Base):
    __tablename__ = "lectures"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    video_url = Column(Text, nullable=False)
    video_storage_id = Column(String(500), nullable=False)
    duration_seconds = Column(Float, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    is_preview = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    course = relationship("Course", back_populates="lectures")
    resources = relationship(
        "LectureResource",
        back_populates="lecture",
        cascade="all, delete-orphan",
        order_by="LectureResource.created_at",
    )


class LectureResource(Base):
    __tablename__ = "lecture_resources"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    lecture_id = Column(String(36), ForeignKey("lectures.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    type = Column(String(10), nullable=False)  # pdf | doc | ppt | link | other
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    lecture = relationship("Lecture", back_populates="resources")
