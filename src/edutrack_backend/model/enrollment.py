from enum import Enum
from sqlalchemy import CheckConstraint, Column, DateTime, Float, Index, String, text

from .base import Base, generate_id, utcnow


class EnrollmentStatus(str, Enum):
    active = "active"
    removed = "removed"


class Enrollment(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        CheckConstraint('progress >= 0 AND progress <= 100', name='enrollments_progress_range'),
        Index('enrollments_course_student_idx', 'course_id', 'student_id'),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    course_id = Column(String(36), nullable=False, index=True)
    student_id = Column(String(255), nullable=False, index=True)
    teacher_id = Column(String(255), nullable=False, index=True)
    institution_id = Column(String(255), index=True)
    progress = Column(Float, nullable=False, default=0.0, server_default=text("0"))
    status = Column(String(16), nullable=False, default=EnrollmentStatus.active.value)
    enrolled_at = Column(DateTime(True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(True))
