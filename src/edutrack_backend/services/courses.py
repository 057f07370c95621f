import logging
from typing import Optional
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import archive_db, create_db, paginate, update_db
from edutrack_backend.api.exceptions import BadRequestException, ForbiddenException
from edutrack_backend.interface.base import Page, PageQuery
from edutrack_backend.interface.courses import CourseCreate, CourseGet, CourseList, CourseQuery, CourseStats, CourseUpdate
from edutrack_backend.model.course import Course
from edutrack_backend.model.enrollment import Enrollment, EnrollmentStatus
from edutrack_backend.permissions.core import check_permissions, check_role, get_authorized
from edutrack_backend.permissions.principal import Principal, Role
from edutrack_backend.services.aggregates import progress_summary

logger = logging.getLogger(__name__)


def _resolve_owner(permissions: Principal, entity: CourseCreate) -> tuple[str, Optional[str]]:
    teacher_id = entity.teacher_id or permissions.user_id
    institution_id = entity.institution_id or permissions.institution_id

    if permissions.role == Role.teacher and teacher_id != permissions.user_id:
        raise ForbiddenException(detail="Teachers can only create their own courses")

    if not permissions.is_admin and institution_id != permissions.institution_id:
        raise ForbiddenException(detail="Courses can only be created within your institution")

    return teacher_id, institution_id


def create_course(permissions: Principal, db: Session, entity: CourseCreate) -> CourseGet:
    check_role(permissions, "courses", "create")

    teacher_id, institution_id = _resolve_owner(permissions, entity)

    course = create_db(db, Course(
        title=entity.title,
        description=entity.description,
        teacher_id=teacher_id,
        institution_id=institution_id,
        is_published=False
    ))

    logger.info(f"Course {course.id} created by {permissions.user_id}")
    return CourseGet.model_validate(course)


def list_courses(permissions: Principal, db: Session, params: CourseQuery, page: PageQuery) -> Page[CourseList]:
    query = check_permissions(permissions, Course, "list", db)

    if params.is_published is not None:
        query = query.filter(Course.is_published.is_(params.is_published))
    if params.institution_id is not None:
        query = query.filter(Course.institution_id == params.institution_id)
    if params.teacher_id is not None:
        query = query.filter(Course.teacher_id == params.teacher_id)

    return paginate(query, Course, page, CourseList)


def get_course(permissions: Principal, db: Session, id: str) -> CourseGet:
    return CourseGet.model_validate(get_authorized(permissions, Course, id, "get", db))


def update_course(permissions: Principal, db: Session, id: str, entity: CourseUpdate) -> CourseGet:
    course = get_authorized(permissions, Course, id, "update", db)

    if entity.title is None and "title" in entity.model_fields_set:
        raise BadRequestException(detail="Title cannot be null")

    return CourseGet.model_validate(update_db(db, course, entity))


def archive_course(permissions: Principal, db: Session, id: str) -> CourseGet:
    course = get_authorized(permissions, Course, id, "delete", db)
    archived = archive_db(db, course)
    logger.info(f"Course {id} archived by {permissions.user_id}")
    return CourseGet.model_validate(archived)


def toggle_publish(permissions: Principal, db: Session, id: str) -> CourseGet:
    course = get_authorized(permissions, Course, id, "publish", db)
    return CourseGet.model_validate(update_db(db, course, {"is_published": not course.is_published}))


def course_stats(permissions: Principal, db: Session, id: str) -> CourseStats:
    course = get_authorized(permissions, Course, id, "stats", db)

    enrolled, average_progress = progress_summary(
        db.query(Enrollment).filter(
            Enrollment.course_id == course.id,
            Enrollment.status == EnrollmentStatus.active.value
        )
    )

    return CourseStats(course_id=course.id, enrolled=enrolled, average_progress=average_progress)
