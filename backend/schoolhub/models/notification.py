"""Notification model."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, Text, Boolean
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import NotificationType, Priority, ResourceType


class Notification(Base):
    """Notification model."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    resource_type = Column(SQLEnum(ResourceType))
    resource_id = Column(String(36))
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True))
    priority = Column(SQLEnum(Priority), default=Priority.normal, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    # Relationships
    recipient = relationship("User", foreign_keys=[recipient_id])
    sender = relationship("User", foreign_keys=[sender_id])

    def __repr__(self):
        return f"<Notification(id={self.id}, recipient_id={self.recipient_id}, type={self.type})>"

    @property
    def related_resource(self):
        if self.resource_type is None:
            return None
        return {"type": self.resource_type.value, "id": self.resource_id}

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = utcnow()
