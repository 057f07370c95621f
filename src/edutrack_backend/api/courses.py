from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from edutrack_backend.api.crud import page_params
from edutrack_backend.database import get_db
from edutrack_backend.interface.base import MessageResponse, Page, PageQuery
from edutrack_backend.interface.courses import CourseCreate, CourseGet, CourseList, CourseQuery, CourseStats, CourseUpdate
from edutrack_backend.permissions.auth import get_current_principal, require_permission
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.services import courses as course_service

course_router = APIRouter()

@course_router.post("", response_model=CourseGet, status_code=status.HTTP_201_CREATED)
async def create_course(
    permissions: Annotated[Principal, Depends(require_permission("courses", "create"))],
    entity: CourseCreate,
    db: Session = Depends(get_db)
):
    return course_service.create_course(permissions, db, entity)

@course_router.get("", response_model=Page[CourseList])
async def list_courses(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    page: Annotated[PageQuery, Depends(page_params)],
    is_published: Annotated[Optional[bool], Query(alias="isPublished")] = None,
    institution_id: Annotated[Optional[str], Query(alias="institutionId")] = None,
    teacher_id: Annotated[Optional[str], Query(alias="teacherId")] = None,
    db: Session = Depends(get_db)
):
    params = CourseQuery(is_published=is_published, institution_id=institution_id, teacher_id=teacher_id)
    return course_service.list_courses(permissions, db, params, page)

@course_router.get("/{course_id}", response_model=CourseGet)
async def get_course(permissions: Annotated[Principal, Depends(get_current_principal)], course_id: str, db: Session = Depends(get_db)):
    return course_service.get_course(permissions, db, course_id)

@course_router.put("/{course_id}", response_model=CourseGet)
async def update_course(
    permissions: Annotated[Principal, Depends(require_permission("courses", "update"))],
    course_id: str,
    entity: CourseUpdate,
    db: Session = Depends(get_db)
):
    return course_service.update_course(permissions, db, course_id, entity)

@course_router.delete("/{course_id}", response_model=MessageResponse)
async def archive_course(permissions: Annotated[Principal, Depends(get_current_principal)], course_id: str, db: Session = Depends(get_db)):
    course_service.archive_course(permissions, db, course_id)
    return MessageResponse(message="Course archived")

@course_router.post("/{course_id}/publish", response_model=CourseGet)
async def toggle_publish(permissions: Annotated[Principal, Depends(get_current_principal)], course_id: str, db: Session = Depends(get_db)):
    return course_service.toggle_publish(permissions, db, course_id)

@course_router.get("/{course_id}/stats", response_model=CourseStats)
async def course_stats(permissions: Annotated[Principal, Depends(get_current_principal)], course_id: str, db: Session = Depends(get_db)):
    return course_service.course_stats(permissions, db, course_id)
