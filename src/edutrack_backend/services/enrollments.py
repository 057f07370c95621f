import logging
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import create_db, paginate, update_db
from edutrack_backend.api.exceptions import BadRequestException
from edutrack_backend.interface.base import Page, PageQuery
from edutrack_backend.interface.enrollments import EnrollmentCreate, EnrollmentGet, EnrollmentQuery, ProgressUpdate
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment, EnrollmentStatus
from edutrack_backend.model.user import User
from edutrack_backend.permissions.core import check_permissions, check_role, check_student_scope, get_authorized
from edutrack_backend.permissions.principal import Principal

logger = logging.getLogger(__name__)


def enroll_student(permissions: Principal, db: Session, entity: EnrollmentCreate) -> EnrollmentGet:
    check_role(permissions, "enrollments", "create")

    # Ownership and tenant are inherited from the course
    course = get_authorized(permissions, Course, entity.course_id, "enroll", db)

    existing = db.query(Enrollment).filter(
        Enrollment.course_id == course.id,
        Enrollment.student_id == entity.student_id,
        Enrollment.status == EnrollmentStatus.active.value
    ).first()

    if existing is not None:
        raise BadRequestException(detail="Student is already enrolled in this course")

    enrollment = create_db(db, Enrollment(
        course_id=course.id,
        student_id=entity.student_id,
        teacher_id=course.teacher_id,
        institution_id=course.institution_id,
        progress=0.0,
        status=EnrollmentStatus.active.value
    ))

    logger.info(f"Student {entity.student_id} enrolled in course {course.id} by {permissions.user_id}")
    return EnrollmentGet.model_validate(enrollment)


def list_enrollments(permissions: Principal, db: Session, params: EnrollmentQuery, page: PageQuery) -> Page[EnrollmentGet]:
    query = check_permissions(permissions, Enrollment, "list", db)

    query = query.filter(Enrollment.status == params.status.value)

    if params.course_id is not None:
        query = query.filter(Enrollment.course_id == params.course_id)
    if params.student_id is not None:
        query = query.filter(Enrollment.student_id == params.student_id)

    return paginate(query, Enrollment, page, EnrollmentGet, order_column=Enrollment.enrolled_at)


def get_enrollment(permissions: Principal, db: Session, id: str) -> EnrollmentGet:
    return EnrollmentGet.model_validate(get_authorized(permissions, Enrollment, id, "get", db))


def unenroll(permissions: Principal, db: Session, id: str) -> EnrollmentGet:
    enrollment = get_authorized(permissions, Enrollment, id, "delete", db)

    if enrollment.status == EnrollmentStatus.removed.value:
        raise BadRequestException(detail="Enrollment already removed")

    removed = update_db(db, enrollment, {"status": EnrollmentStatus.removed})
    logger.info(f"Enrollment {id} removed by {permissions.user_id}")
    return EnrollmentGet.model_validate(removed)


def update_progress(permissions: Principal, db: Session, id: str, entity: ProgressUpdate) -> EnrollmentGet:
    enrollment = get_authorized(permissions, Enrollment, id, "progress", db)

    if enrollment.status != EnrollmentStatus.active.value:
        raise BadRequestException(detail="Progress can only be recorded on active enrollments")

    updated = update_db(db, enrollment, {"progress": entity.progress})
    logger.info(f"Progress of enrollment {id} set to {entity.progress} by {permissions.user_id}")
    return EnrollmentGet.model_validate(updated)


def student_enrollments(permissions: Principal, db: Session, student_id: str) -> List[EnrollmentGet]:
    check_role(permissions, "enrollments", "student")
    check_student_scope(permissions, student_id)

    query = check_permissions(permissions, Enrollment, "student", db)

    enrollments = (
        query.filter(
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.active.value
        )
        .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc())
        .all()
    )

    return [EnrollmentGet.model_validate(e) for e in enrollments]


def progress_recipient(db: Session, enrollment: EnrollmentGet) -> Optional[Tuple[str, str]]:
    """Email address of the student and the course title, when both are known."""
    student = db.query(User).filter(User.id == enrollment.student_id, User.deleted.is_(False)).first()
    course = db.query(Course).filter(Course.id == enrollment.course_id).first()

    if student is None or course is None:
        return None

    return student.email, course.title
