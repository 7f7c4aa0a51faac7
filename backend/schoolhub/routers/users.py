"""User administration endpoints."""

from fastapi import APIRouter, Depends, Request, status

from ..query import query_params
from ..schemas.user import UserCreate, UserOut, UserUpdate
from ..services import UserService
from .deps import ok, service

router = APIRouter(prefix="/users", tags=["Users"])
get_service = service(UserService)


@router.get("")
async def list_users(request: Request, svc: UserService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, svc: UserService = Depends(get_service)):
    return ok(svc.serialize(svc.create(data)))


@router.get("/parent/students")
async def list_children(svc: UserService = Depends(get_service)):
    """Students linked to the calling parent."""
    children = [UserOut.model_validate(u).dump() for u in svc.children()]
    return {"success": True, "count": len(children), "data": children}


@router.get("/student/teachers")
async def list_teachers(svc: UserService = Depends(get_service)):
    """Teachers of the calling student's courses."""
    teachers = [UserOut.model_validate(u).dump() for u in svc.teachers()]
    return {"success": True, "count": len(teachers), "data": teachers}


@router.get("/{user_id}")
async def get_user(user_id: str, svc: UserService = Depends(get_service)):
    return ok(svc.serialize(svc.get(user_id)))


@router.put("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, svc: UserService = Depends(get_service)):
    return ok(svc.serialize(svc.update(user_id, data)))


@router.delete("/{user_id}")
async def delete_user(user_id: str, svc: UserService = Depends(get_service)):
    svc.delete(user_id)
    return ok()
