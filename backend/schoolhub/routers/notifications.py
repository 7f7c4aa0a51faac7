"""Notification endpoints."""

from fastapi import APIRouter, Depends, Request, status

from ..query import query_params
from ..schemas.notification import NotificationCreate
from ..services import NotificationService
from .deps import ok, service

router = APIRouter(prefix="/notifications", tags=["Notifications"])
get_service = service(NotificationService)


@router.get("")
async def list_notifications(request: Request, svc: NotificationService = Depends(get_service)):
    return svc.list(query_params(request))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(data: NotificationCreate, svc: NotificationService = Depends(get_service)):
    return ok(svc.serialize(svc.create(data)))


@router.get("/unread/count")
async def unread_count(svc: NotificationService = Depends(get_service)):
    return ok({"count": svc.unread_count()})


@router.put("/read-all")
async def mark_all_read(svc: NotificationService = Depends(get_service)):
    return ok({"updated": svc.mark_all_read()})


@router.put("/{notification_id}/read")
async def mark_read(notification_id: str, svc: NotificationService = Depends(get_service)):
    return ok(svc.serialize(svc.mark_read(notification_id)))


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, svc: NotificationService = Depends(get_service)):
    svc.delete(notification_id)
    return ok()
