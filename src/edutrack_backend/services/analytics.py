"""
Aggregate reports over courses and enrollments.

Every report is computed from the caller's visible slice of the data:
super admins see all institutions, institution admins their own.
Averages over an empty set are 0.
"""

import logging
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from edutrack_backend.api.exceptions import ForbiddenException
from edutrack_backend.interface.analytics import CourseEngagement, InstitutionReport, StudentReport, TeacherPerformance
from edutrack_backend.interface.enrollments import EnrollmentGet
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment, EnrollmentStatus
from edutrack_backend.permissions.core import check_permissions, check_role, check_student_scope, get_authorized
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.services.aggregates import average, normalize_average, progress_summary

logger = logging.getLogger(__name__)

INSTITUTION_REPORT_COLUMNS = ["institutionId", "totalCourses", "totalEnrollments", "avgProgress"]
TEACHER_REPORT_COLUMNS = ["teacherId", "totalEnrollments", "avgProgress"]


def _scope_institution(permissions: Principal, institution_id: Optional[str]) -> Optional[str]:
    if permissions.is_admin:
        return institution_id
    if institution_id is not None and institution_id != permissions.institution_id:
        raise ForbiddenException(detail="Reports are limited to your institution")
    return permissions.institution_id


def _active_enrollments(permissions: Principal, db: Session, institution_id: Optional[str]) -> Query:
    query = check_permissions(permissions, Enrollment, "list", db).filter(
        Enrollment.status == EnrollmentStatus.active.value
    )
    if institution_id is not None:
        query = query.filter(Enrollment.institution_id == institution_id)
    return query


def institution_report(permissions: Principal, db: Session, institution_id: Optional[str] = None) -> InstitutionReport:
    check_role(permissions, "analytics", "institution")
    institution_id = _scope_institution(permissions, institution_id)

    courses = check_permissions(permissions, Course, "list", db)
    if institution_id is not None:
        courses = courses.filter(Course.institution_id == institution_id)

    total_courses = courses.count()
    total_enrollments, avg_progress = progress_summary(_active_enrollments(permissions, db, institution_id))

    return InstitutionReport(
        institution_id=institution_id,
        total_courses=total_courses,
        total_enrollments=total_enrollments,
        avg_progress=avg_progress
    )


def teacher_performance(permissions: Principal, db: Session, institution_id: Optional[str] = None) -> List[TeacherPerformance]:
    check_role(permissions, "analytics", "teachers")
    institution_id = _scope_institution(permissions, institution_id)

    rows = (
        _active_enrollments(permissions, db, institution_id)
        .with_entities(Enrollment.teacher_id, func.count(Enrollment.id), func.avg(Enrollment.progress))
        .group_by(Enrollment.teacher_id)
        .order_by(Enrollment.teacher_id)
        .all()
    )

    return [
        TeacherPerformance(teacher_id=teacher_id, total_enrollments=count, avg_progress=normalize_average(avg))
        for teacher_id, count, avg in rows
    ]


def student_report(permissions: Principal, db: Session, student_id: str) -> StudentReport:
    check_role(permissions, "analytics", "student")
    check_student_scope(permissions, student_id)

    enrollments = (
        check_permissions(permissions, Enrollment, "student", db)
        .filter(
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.active.value
        )
        .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
        .all()
    )

    items = [EnrollmentGet.model_validate(e) for e in enrollments]
    return StudentReport(
        student_id=student_id,
        total_enrollments=len(items),
        avg_progress=average(e.progress for e in items),
        enrollments=items
    )


def course_engagement(permissions: Principal, db: Session, course_id: str) -> CourseEngagement:
    check_role(permissions, "analytics", "course")
    course = get_authorized(permissions, Course, course_id, "stats", db)

    total_enrolled, avg_progress = progress_summary(
        db.query(Enrollment).filter(
            Enrollment.course_id == course.id,
            Enrollment.status == EnrollmentStatus.active.value
        )
    )

    return CourseEngagement(course_id=course.id, total_enrolled=total_enrolled, avg_progress=avg_progress)
