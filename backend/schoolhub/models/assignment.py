"""Assignment model."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, JSON, Boolean, Float, Text, CheckConstraint
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow, ensure_utc
from .enums import AssignmentType


class Assignment(Base):
    """Assignment model."""
    __tablename__ = "assignments"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_assignment_total_points"),
        CheckConstraint("late_penalty >= 0 AND late_penalty <= 100", name="ck_assignment_late_penalty"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    total_points = Column(Float, nullable=False)
    assignment_type = Column(SQLEnum(AssignmentType), default=AssignmentType.Homework)
    attachments = Column(JSON, default=list)
    allow_late_submissions = Column(Boolean, default=False, nullable=False)
    late_penalty = Column(Float, default=0, nullable=False)
    is_published = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    course = relationship("Course", back_populates="assignments")
    creator = relationship("User")
    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")
    grades = relationship("Grade", back_populates="assignment", passive_deletes=True)

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}')>"

    def is_past_due(self, at) -> bool:
        return ensure_utc(at) > ensure_utc(self.due_date)

    def accepts_submission_at(self, at) -> bool:
        """Check if a submission made at ``at`` is admissible."""
        return self.allow_late_submissions or not self.is_past_due(at)
