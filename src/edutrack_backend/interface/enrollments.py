from datetime import datetime
from typing import Optional
from pydantic import Field

from edutrack_backend.interface.base import CamelModel
from edutrack_backend.model.enrollment import EnrollmentStatus

class EnrollmentCreate(CamelModel):
    course_id: str = Field(min_length=1)
    student_id: str = Field(min_length=1)

class EnrollmentGet(CamelModel):
    id: str
    course_id: str
    student_id: str
    teacher_id: str
    institution_id: Optional[str] = None
    progress: float
    status: EnrollmentStatus
    enrolled_at: datetime
    updated_at: Optional[datetime] = None

class EnrollmentQuery(CamelModel):
    course_id: Optional[str] = None
    student_id: Optional[str] = None
    status: EnrollmentStatus = EnrollmentStatus.active

class ProgressUpdate(CamelModel):
    progress: float = Field(ge=0, le=100, description="Completion percentage")
