"""Notification inbox of the calling user."""

import logging

from ..models import Notification, User
from ..schemas.notification import NotificationCreate, NotificationOut
from ..security.policy import Action, check
from ..timeutil import utcnow
from .base import DomainService

logger = logging.getLogger(__name__)


class NotificationService(DomainService):
    model = Notification
    schema = NotificationOut
    entity = "Notification"

    def create(self, data: NotificationCreate) -> Notification:
        check(Action.NOTIFICATION_CREATE, self.principal)
        recipient = self.load(User, data.recipient, "User")
        notification = Notification(
            recipient_id=recipient.id,
            sender_id=self.principal.id,
            type=data.type,
            title=data.title,
            message=data.message,
            priority=data.priority,
        )
        if data.related_resource is not None:
            notification.resource_type = data.related_resource.type
            notification.resource_id = data.related_resource.id
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        self.effects.push(notification)
        return notification

    def unread_count(self) -> int:
        return self.visible().filter(Notification.is_read.is_(False)).count()

    def mark_read(self, id: str) -> Notification:
        notification = self.load(Notification, id, self.entity)
        check(Action.NOTIFICATION_OWN, self.principal, notification)
        notification.mark_read()
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self) -> int:
        updated = self.visible().filter(Notification.is_read.is_(False)).update(
            {Notification.is_read: True, Notification.read_at: utcnow()}, synchronize_session="fetch"
        )
        self.db.commit()
        logger.info(f"Marked {updated} notification(s) read for {self.principal.id}")
        return updated

    def delete(self, id: str):
        notification = self.load(Notification, id, self.entity)
        check(Action.NOTIFICATION_OWN, self.principal, notification)
        self.db.delete(notification)
        self.db.commit()
