from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from edutrack_backend.database import get_db
from edutrack_backend.interface.analytics import CourseEngagement, InstitutionReport, StudentReport, TeacherPerformance
from edutrack_backend.permissions.auth import get_current_principal
from edutrack_backend.permissions.principal import Principal
from edutrack_backend.services import analytics as analytics_service
from edutrack_backend.services.analytics import INSTITUTION_REPORT_COLUMNS, TEACHER_REPORT_COLUMNS
from edutrack_backend.utils.exports import rows_to_csv, rows_to_pdf

analytics_router = APIRouter()

InstitutionFilter = Annotated[Optional[str], Query(alias="institutionId")]

def _attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@analytics_router.get("/institution", response_model=InstitutionReport)
async def institution_report(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    return analytics_service.institution_report(permissions, db, institution_id)

@analytics_router.get("/teachers", response_model=List[TeacherPerformance])
async def teacher_performance(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    return analytics_service.teacher_performance(permissions, db, institution_id)

@analytics_router.get("/students/{student_id}", response_model=StudentReport)
async def student_report(permissions: Annotated[Principal, Depends(get_current_principal)], student_id: str, db: Session = Depends(get_db)):
    return analytics_service.student_report(permissions, db, student_id)

@analytics_router.get("/courses/{course_id}", response_model=CourseEngagement)
async def course_engagement(permissions: Annotated[Principal, Depends(get_current_principal)], course_id: str, db: Session = Depends(get_db)):
    return analytics_service.course_engagement(permissions, db, course_id)

@analytics_router.get("/institution/export")
async def export_institution_csv(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    report = analytics_service.institution_report(permissions, db, institution_id)
    csv = rows_to_csv([report.model_dump(by_alias=True)], INSTITUTION_REPORT_COLUMNS)
    return _attachment(csv, "text/csv", "institution_report.csv")

@analytics_router.get("/teachers/export")
async def export_teachers_csv(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    rows = [r.model_dump(by_alias=True) for r in analytics_service.teacher_performance(permissions, db, institution_id)]
    return _attachment(rows_to_csv(rows, TEACHER_REPORT_COLUMNS), "text/csv", "teacher_performance.csv")

@analytics_router.get("/institution/export/pdf")
async def export_institution_pdf(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    report = analytics_service.institution_report(permissions, db, institution_id)
    pdf = rows_to_pdf("Institution Report", [report.model_dump(by_alias=True)], INSTITUTION_REPORT_COLUMNS)
    return _attachment(pdf, "application/pdf", "institution_report.pdf")

@analytics_router.get("/teachers/export/pdf")
async def export_teachers_pdf(
    permissions: Annotated[Principal, Depends(get_current_principal)],
    institution_id: InstitutionFilter = None,
    db: Session = Depends(get_db)
):
    rows = [r.model_dump(by_alias=True) for r in analytics_service.teacher_performance(permissions, db, institution_id)]
    return _attachment(rows_to_pdf("Teacher Performance Report", rows, TEACHER_REPORT_COLUMNS), "application/pdf", "teacher_report.pdf")
