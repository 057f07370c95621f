from typing import List, Optional

from edutrack_backend.interface.base import CamelModel
from edutrack_backend.interface.enrollments import EnrollmentGet

class InstitutionReport(CamelModel):
    institution_id: Optional[str] = None
    total_courses: int
    total_enrollments: int
    avg_progress: float

class TeacherPerformance(CamelModel):
    teacher_id: str
    total_enrollments: int
    avg_progress: float

class StudentReport(CamelModel):
    student_id: str
    total_enrollments: int
    avg_progress: float
    enrollments: List[EnrollmentGet]

class CourseEngagement(CamelModel):
    course_id: str
    total_enrolled: int
    avg_progress: float
