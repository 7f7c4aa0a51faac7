"""Course endpoints: courses, enrollment, materials and enrollment requests."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from ..models import MaterialType
from ..query import query_params
from ..schemas.course import CourseCreate, CourseUpdate, MaterialCreate, MaterialOut, StudentIds
from ..schemas.enrollment_request import EnrollmentRequestOut
from ..services import CourseService, EnrollmentRequestService
from ..uploads import store_upload
from .deps import ok, service

router = APIRouter(prefix="/courses", tags=["Courses"])
get_service = service(CourseService)
get_requests = service(EnrollmentRequestService)


@router.get("")
async def list_courses(request: Request, svc: CourseService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(data: CourseCreate, svc: CourseService = Depends(get_service)):
    return ok(svc.serialize(svc.create(data)))


@router.get("/{course_id}")
async def get_course(course_id: str, svc: CourseService = Depends(get_service)):
    return ok(svc.detail(course_id))


@router.put("/{course_id}")
async def update_course(course_id: str, data: CourseUpdate, svc: CourseService = Depends(get_service)):
    return ok(svc.serialize(svc.update(course_id, data)))


@router.delete("/{course_id}")
async def delete_course(course_id: str, svc: CourseService = Depends(get_service)):
    svc.delete(course_id)
    return ok()


@router.put("/{course_id}/enroll")
async def enroll_students(course_id: str, data: StudentIds, svc: CourseService = Depends(get_service)):
    return ok(svc.serialize(svc.enroll(course_id, data.student_ids)))


@router.put("/{course_id}/unenroll")
async def unenroll_students(course_id: str, data: StudentIds, svc: CourseService = Depends(get_service)):
    return ok(svc.serialize(svc.unenroll(course_id, data.student_ids)))


@router.get("/{course_id}/materials")
async def list_materials(course_id: str, svc: CourseService = Depends(get_service)):
    materials = svc.materials(course_id)
    return {"success": True, "count": len(materials), "data": materials}


@router.post("/{course_id}/materials", status_code=status.HTTP_201_CREATED)
async def add_material(course_id: str, data: MaterialCreate, svc: CourseService = Depends(get_service)):
    """Attach a linked material (URL, video, text...) to the course."""
    material = svc.add_material(course_id, data)
    return ok(MaterialOut.model_validate(material).dump())


@router.post("/{course_id}/materials/upload", status_code=status.HTTP_201_CREATED)
async def upload_material(
    course_id: str,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    svc: CourseService = Depends(get_service),
):
    """Upload a file and attach it to the course as a material."""
    svc.check_materials(course_id)
    stored = await store_upload(file, "course-materials")
    data = MaterialCreate(
        title=title or stored["fileName"],
        description=description,
        type=MaterialType.file,
        url=stored["fileUrl"],
    )
    material = svc.add_material(course_id, data)
    return ok(MaterialOut.model_validate(material).dump())


@router.delete("/{course_id}/materials/{material_id}")
async def remove_material(course_id: str, material_id: str, svc: CourseService = Depends(get_service)):
    svc.remove_material(course_id, material_id)
    return ok()


@router.post("/{course_id}/enroll-request", status_code=status.HTTP_201_CREATED)
async def request_enrollment(course_id: str, svc: EnrollmentRequestService = Depends(get_requests)):
    """Ask to join a course as the calling student."""
    return ok(EnrollmentRequestOut.model_validate(svc.request(course_id)).dump())


@router.get("/{course_id}/enrollment-requests")
async def course_enrollment_requests(
    course_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    svc: EnrollmentRequestService = Depends(get_requests),
):
    requests = svc.for_course(course_id, status_filter)
    return {"success": True, "count": len(requests), "data": requests}
