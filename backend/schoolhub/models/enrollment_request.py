"""Enrollment request model."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, Text, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import EnrollmentStatus


class EnrollmentRequest(Base):
    """A student's request to join a course."""
    __tablename__ = "enrollment_requests"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_request_student_course"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(EnrollmentStatus), default=EnrollmentStatus.pending, nullable=False)
    request_date = Column(DateTime(timezone=True), default=utcnow)
    response_date = Column(DateTime(timezone=True))
    response_by = Column(String(36), ForeignKey("users.id"))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course", back_populates="enrollment_requests")
    responder = relationship("User", foreign_keys=[response_by])

    def __repr__(self):
        return f"<EnrollmentRequest(student_id={self.student_id}, course_id={self.course_id}, status={self.status})>"

    @property
    def is_pending(self) -> bool:
        return self.status == EnrollmentStatus.pending

    def reopen(self):
        """Reset a rejected request back to pending."""
        self.status = EnrollmentStatus.pending
        self.request_date = utcnow()
        self.response_date = None
        self.response_by = None
        self.notes = None
