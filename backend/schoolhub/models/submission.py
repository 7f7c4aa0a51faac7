"""Submission model and its pre-write hooks."""

import logging

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Enum as SQLEnum, JSON, Float, Text, Boolean, UniqueConstraint,
    CheckConstraint, event, inspect, select,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow, ensure_utc
from .enums import SubmissionStatus
from .assignment import Assignment

logger = logging.getLogger(__name__)


class Submission(Base):
    """A student's answer to an assignment; one per (assignment, student)."""
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
        CheckConstraint("score IS NULL OR score >= 0", name="ck_submission_score"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    content = Column(Text)
    attachments = Column(JSON, default=list)
    score = Column(Float)
    feedback = Column(Text)
    graded_by = Column(String(36), ForeignKey("users.id"))
    graded_at = Column(DateTime(timezone=True))
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.submitted, nullable=False)
    is_late = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    assignment = relationship("Assignment", back_populates="submissions")
    student = relationship("User", foreign_keys=[student_id])
    grader = relationship("User", foreign_keys=[graded_by])

    def __repr__(self):
        return f"<Submission(id={self.id}, assignment_id={self.assignment_id}, student_id={self.student_id})>"


def _assignment_terms(connection, assignment_id):
    table = Assignment.__table__
    return connection.execute(
        select(table.c.due_date, table.c.allow_late_submissions, table.c.late_penalty).where(table.c.id == assignment_id)
    ).first()


@event.listens_for(Submission, "before_insert")
def _derive_on_insert(mapper, connection, target):
    """Flag lateness and apply the late penalty to a pre-scored submission."""
    if target.submitted_at is None:
        target.submitted_at = utcnow()
    terms = _assignment_terms(connection, target.assignment_id)
    if terms is None:
        return
    due_date, allow_late, late_penalty = terms
    target.is_late = ensure_utc(target.submitted_at) > ensure_utc(due_date)
    if target.is_late and allow_late and (late_penalty or 0) > 0 and target.score:
        adjusted = max(0.0, target.score * (1 - late_penalty / 100))
        logger.debug(f"Late penalty {late_penalty}% applied to submission score {target.score} -> {adjusted}")
        target.score = adjusted


@event.listens_for(Submission, "before_update")
def _derive_on_update(mapper, connection, target):
    """Recompute lateness when a submission is replaced."""
    if not inspect(target).attrs.submitted_at.history.has_changes():
        return
    terms = _assignment_terms(connection, target.assignment_id)
    if terms is not None:
        target.is_late = ensure_utc(target.submitted_at) > ensure_utc(terms[0])
