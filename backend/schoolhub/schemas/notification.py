"""Notification schemas."""

from typing import Optional

from pydantic import BaseModel, Field

from ..models.enums import NotificationType, Priority, ResourceType
from .common import CamelModel, UTCDateTime, ref, ref_in


class RelatedResource(BaseModel):
    type: ResourceType
    id: str


class NotificationCreate(CamelModel):
    recipient: str = ref_in("recipient")
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1)
    related_resource: Optional[RelatedResource] = None
    priority: Priority = Priority.normal


class NotificationOut(CamelModel):
    id: str
    recipient: str = ref("recipient")
    sender: Optional[str] = ref("sender", None)
    type: NotificationType
    title: str
    message: str
    related_resource: Optional[dict] = None
    is_read: bool
    read_at: Optional[UTCDateTime] = None
    priority: Priority
    created_at: Optional[UTCDateTime] = None
