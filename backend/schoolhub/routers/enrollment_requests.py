"""Enrollment request endpoints."""

from fastapi import APIRouter, Depends, Request

from ..query import query_params
from ..schemas.enrollment_request import EnrollmentDecision
from ..services import EnrollmentRequestService
from .deps import ok, service

router = APIRouter(prefix="/enrollment-requests", tags=["Enrollment Requests"])
get_service = service(EnrollmentRequestService)


@router.get("")
async def list_enrollment_requests(request: Request, svc: EnrollmentRequestService = Depends(get_service)):
    """The caller's requests (all requests for staff), newest first."""
    return svc.list(query_params(request))


@router.get("/{request_id}")
async def get_enrollment_request(request_id: str, svc: EnrollmentRequestService = Depends(get_service)):
    return ok(svc.serialize(svc.get(request_id)))


@router.put("/{request_id}")
async def decide_enrollment_request(
    request_id: str,
    data: EnrollmentDecision,
    svc: EnrollmentRequestService = Depends(get_service),
):
    """Approve or reject a pending request."""
    return ok(svc.serialize(svc.decide(request_id, data)))


@router.delete("/{request_id}")
async def cancel_enrollment_request(request_id: str, svc: EnrollmentRequestService = Depends(get_service)):
    svc.cancel(request_id)
    return ok()
