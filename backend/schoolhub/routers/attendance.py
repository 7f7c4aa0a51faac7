"""Attendance endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..query import query_params
from ..schemas.attendance import AttendanceCreate, BulkAttendance
from ..services import AttendanceService
from .deps import ok, service

router = APIRouter(prefix="/attendance", tags=["Attendance"])
get_service = service(AttendanceService)


@router.get("")
async def list_attendance(request: Request, svc: AttendanceService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def record_attendance(data: AttendanceCreate, svc: AttendanceService = Depends(get_service)):
    return ok(svc.serialize(svc.record(data)))


@router.get("/stats")
async def attendance_stats(
    student_id: Optional[str] = Query(None, alias="studentId"),
    course_id: Optional[str] = Query(None, alias="courseId"),
    svc: AttendanceService = Depends(get_service),
):
    """Per-student totals, or per-day totals for a whole course."""
    return ok(svc.stats(student_id, course_id))


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def record_bulk_attendance(data: BulkAttendance, svc: AttendanceService = Depends(get_service)):
    results = svc.bulk(data)
    return {"success": True, "count": len(results), "data": results}
