"""Assignment and submission endpoints."""

from typing import List

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from ..query import query_params
from ..schemas.assignment import AssignmentCreate, AssignmentUpdate, SubmissionCreate, SubmissionGrade, SubmissionOut
from ..services import AssignmentService
from ..uploads import store_upload
from .deps import ok, service

router = APIRouter(prefix="/assignments", tags=["Assignments"])
get_service = service(AssignmentService)


@router.get("")
async def list_assignments(request: Request, svc: AssignmentService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(data: AssignmentCreate, svc: AssignmentService = Depends(get_service)):
    return ok(svc.serialize(svc.create(data)))


@router.put("/submissions/{submission_id}")
async def grade_submission(submission_id: str, data: SubmissionGrade, svc: AssignmentService = Depends(get_service)):
    """Score a submission; the matching assignment grade is written with it."""
    return ok(SubmissionOut.model_validate(svc.grade(submission_id, data)).dump())


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: str, svc: AssignmentService = Depends(get_service)):
    return ok(svc.detail(assignment_id))


@router.put("/{assignment_id}")
async def update_assignment(assignment_id: str, data: AssignmentUpdate, svc: AssignmentService = Depends(get_service)):
    return ok(svc.serialize(svc.update(assignment_id, data)))


@router.delete("/{assignment_id}")
async def delete_assignment(assignment_id: str, svc: AssignmentService = Depends(get_service)):
    svc.delete(assignment_id)
    return ok()


@router.post("/{assignment_id}/attachments")
async def upload_attachments(
    assignment_id: str,
    files: List[UploadFile] = File(...),
    svc: AssignmentService = Depends(get_service),
):
    svc.check_update(assignment_id)
    stored = [await store_upload(f, "assignments") for f in files]
    return ok(svc.serialize(svc.add_attachments(assignment_id, stored)))


@router.post("/{assignment_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_assignment(assignment_id: str, data: SubmissionCreate, svc: AssignmentService = Depends(get_service)):
    """Submit (or resubmit) the calling student's work."""
    return ok(SubmissionOut.model_validate(svc.submit(assignment_id, data)).dump())


@router.get("/{assignment_id}/submissions")
async def list_submissions(request: Request, assignment_id: str, svc: AssignmentService = Depends(get_service)):
    return svc.submissions(assignment_id, query_params(request))
