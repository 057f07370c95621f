from .base import Base, metadata
from .user import User
from .course import Course
from .enrollment import Enrollment, EnrollmentStatus

__all__ = [
    'Base',
    'metadata',
    'User',
    'Course',
    'Enrollment',
    'EnrollmentStatus',
]
