"""Grade endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..query import query_params
from ..schemas.grade import BulkGrades, GradeCreate
from ..services import GradeService
from .deps import ok, service

router = APIRouter(prefix="/grades", tags=["Grades"])
get_service = service(GradeService)


@router.get("")
async def list_grades(request: Request, svc: GradeService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_grade(data: GradeCreate, svc: GradeService = Depends(get_service)):
    return ok(svc.serialize(svc.record(data)))


@router.get("/summary")
async def grade_summary(
    student_id: Optional[str] = Query(None, alias="studentId"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    svc: GradeService = Depends(get_service),
):
    return ok(svc.summary(student_id, course_id))


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def record_bulk_grades(data: BulkGrades, svc: GradeService = Depends(get_service)):
    results = svc.bulk(data)
    return {"success": True, "count": len(results), "data": results}
