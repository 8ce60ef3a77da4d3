"""Lecture request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class LectureUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    is_preview: Optional[bool] = None
    notes: Optional[str] = None


class ResourceCreate(BaseModel):
    name: str
    url: str
    type: str  # pdf | doc | ppt | link | other


class ResourceResponse(BaseModel):
    id: str
    name: str
    url: str
    type: str


class LectureResponse(BaseModel):
    id: str
    course_id: str
    title: str
    description: Optional[str] = None
    video_url: str
    duration_seconds: Optional[float] = None
    order: int
    is_preview: bool
    notes: Optional[str] = None
    resources: list[ResourceResponse] = []
    created_at: str

    class Config:
        from_attributes = True


class LectureListResponse(BaseModel):
    lectures: list[LectureResponse]
    total: int
