from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from edutrack_backend.interface.base import BaseEntityGet, CamelModel

class CourseCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=4096)
    teacher_id: Optional[str] = Field(None, description="Owning teacher; admins only, defaults to the caller")
    institution_id: Optional[str] = Field(None, description="Owning institution; super admins only, defaults to the caller's")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty or only whitespace')
        return v.strip()

class CourseGet(BaseEntityGet):
    id: str
    title: str
    description: Optional[str] = None
    institution_id: Optional[str] = None
    teacher_id: str
    is_published: bool = False

class CourseList(CamelModel):
    id: str
    title: str
    institution_id: Optional[str] = None
    teacher_id: str
    is_published: bool = False
    created_at: Optional[datetime] = None

class CourseUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=4096)
    is_published: Optional[bool] = None

    @field_validator('is_published')
    @classmethod
    def validate_is_published(cls, v):
        if v is None:
            raise ValueError('isPublished cannot be null')
        return v

class CourseQuery(CamelModel):
    is_published: Optional[bool] = None
    institution_id: Optional[str] = None
    teacher_id: Optional[str] = None

class CourseStats(CamelModel):
    course_id: str
    enrolled: int
    average_progress: float
