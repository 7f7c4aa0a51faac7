"""Grade model and its derived fields."""

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Enum as SQLEnum, Float, Text, Boolean, UniqueConstraint, CheckConstraint,
    event,
)
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import GradeType

LETTER_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def percentage_of(score: float, max_score: float) -> float:
    if not max_score:
        return 0.0
    return round(100.0 * score / max_score, 2)


def letter_for(percentage: float) -> str:
    for threshold, letter in LETTER_THRESHOLDS:
        if percentage >= threshold:
            return letter
    return "F"


class Grade(Base):
    """Grade model; one row per (student, course, assignment, type)."""
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", "assignment_id", "type", name="uq_grade_student_course_assignment_type"),
        CheckConstraint("score >= 0", name="ck_grade_score"),
        CheckConstraint("max_score >= 0", name="ck_grade_max_score"),
        CheckConstraint("weight >= 0", name="ck_grade_weight"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(SQLEnum(GradeType), nullable=False)
    score = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)
    percentage = Column(Float)
    letter_grade = Column(String(2))
    weight = Column(Float, default=1, nullable=False)
    comments = Column(Text)
    graded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    graded_at = Column(DateTime(timezone=True), default=utcnow)
    is_published = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course", back_populates="grades")
    assignment = relationship("Assignment", back_populates="grades")
    grader = relationship("User", foreign_keys=[graded_by])

    def __repr__(self):
        return f"<Grade(student_id={self.student_id}, type={self.type}, percentage={self.percentage})>"

    def derive(self):
        """Recompute percentage, letter grade and publication stamp."""
        self.percentage = percentage_of(self.score or 0, self.max_score or 0)
        self.letter_grade = letter_for(self.percentage)
        if self.is_published and self.published_at is None:
            self.published_at = utcnow()


@event.listens_for(Grade, "before_insert")
@event.listens_for(Grade, "before_update")
def _derive_grade(mapper, connection, target):
    target.derive()
