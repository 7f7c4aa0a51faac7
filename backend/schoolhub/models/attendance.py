"""Attendance model."""

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Enum as SQLEnum, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import AttendanceStatus


class Attendance(Base):
    """One attendance mark per (student, course, day)."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", "date", name="uq_attendance_student_course_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(SQLEnum(AttendanceStatus), default=AttendanceStatus.present, nullable=False)
    late_minutes = Column(Integer, default=0)
    excuse_reason = Column(Text)
    excuse_document_url = Column(String(1000))
    notes = Column(Text)
    recorded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course", back_populates="attendance_records")
    recorder = relationship("User", foreign_keys=[recorded_by])

    def __repr__(self):
        return f"<Attendance(student_id={self.student_id}, course_id={self.course_id}, date={self.date})>"

    @property
    def needs_follow_up(self) -> bool:
        """Absences and late arrivals are reported to the student and parents."""
        return self.status in (AttendanceStatus.absent, AttendanceStatus.late)
