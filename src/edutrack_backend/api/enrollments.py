import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import page_params
from edutrack_backend.database import get_db
from edutrack_backend.interface.base import MessageResponse, Page, PageQuery
from edutrack_backend.interface.enrollments import EnrollmentCreate, EnrollmentGet, EnrollmentQuery, ProgressUpdate
from edutrack_backend.model.enrollment import EnrollmentStatus
from edutrack_backend.permissions.auth import get_current_principal, require_permission
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.services import enrollments as enrollment_service
from edutrack_backend.utils.mail import mail_enabled, send_progress_notification

enrollment_router = APIRouter()
logger = logging.getLogger(__name__)

@enrollment_router.post("", response_model=EnrollmentGet, status_code=status.HTTP_201_CREATED)
async def enroll_student(
    permissions: Annotated[Principal, Depends(require_permission("enrollments", "create"))],
    entity: EnrollmentCreate,
    db: Session = Depends(get_db)
):
    return enrollment_service.enroll_student(permissions, db, entity)

@enrollment_router.get("", response_model=Page[EnrollmentGet])
async def list_enrollments(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    page: Annotated[PageQuery, Depends(page_params)],
    course_id: Annotated[Optional[str], Query(alias="courseId")] = None,
    student_id: Annotated[Optional[str], Query(alias="studentId")] = None,
    enrollment_status: Annotated[EnrollmentStatus, Query(alias="status")] = EnrollmentStatus.active,
    db: Session = Depends(get_db)
):
    params = EnrollmentQuery(course_id=course_id, student_id=student_id, status=enrollment_status)
    return enrollment_service.list_enrollments(permissions, db, params, page)

@enrollment_router.get("/students/{student_id}", response_model=List[EnrollmentGet])
async def student_enrollments(permissions: Annotated[Principal, Depends(get_current_principal)], student_id: str, db: Session = Depends(get_db)):
    return enrollment_service.student_enrollments(permissions, db, student_id)

@enrollment_router.get("/{enrollment_id}", response_model=EnrollmentGet)
async def get_enrollment(permissions: Annotated[Principal, Depends(get_current_principal)], enrollment_id: str, db: Session = Depends(get_db)):
    return enrollment_service.get_enrollment(permissions, db, enrollment_id)

@enrollment_router.delete("/{enrollment_id}", response_model=MessageResponse)
async def unenroll(permissions: Annotated[Principal, Depends(get_current_principal)], enrollment_id: str, db: Session = Depends(get_db)):
    enrollment_service.unenroll(permissions, db, enrollment_id)
    return MessageResponse(message="Enrollment removed successfully.")

@enrollment_router.put("/{enrollment_id}", response_model=EnrollmentGet)
@enrollment_router.put("/{enrollment_id}/progress", response_model=EnrollmentGet)
async def update_progress(
    permissions: Annotated[Principal, Depends(require_permission("enrollments", "progress"))],
    enrollment_id: str,
    entity: ProgressUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    enrollment = enrollment_service.update_progress(permissions, db, enrollment_id, entity)

    if mail_enabled():
        recipient = enrollment_service.progress_recipient(db, enrollment)
        if recipient is not None:
            email, course_title = recipient
            background_tasks.add_task(send_progress_notification, email, course_title, enrollment.progress)
        else:
            logger.warning(f"No notification recipient for enrollment {enrollment_id}")

    return enrollment
