"""Course, its enrollment set and its materials."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum, JSON, Integer, Text, Table
from sqlalchemy.orm import relationship
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import Semester, MaterialType

course_students = Table(
    "course_students",
    Base.metadata,
    Column("course_id", String(36), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Course(Base):
    """Course model."""
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    grade_level = Column(Integer)
    academic_year = Column(String(20), nullable=False)
    semester = Column(SQLEnum(Semester), nullable=False)
    teacher_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    schedule = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    teacher = relationship("User", back_populates="teaching_courses")
    students = relationship("User", secondary=course_students, back_populates="enrolled_courses")
    materials = relationship(
        "CourseMaterial", back_populates="course", cascade="all, delete-orphan", order_by="CourseMaterial.uploaded_at"
    )
    assignments = relationship("Assignment", back_populates="course", cascade="all, delete-orphan")
    attendance_records = relationship("Attendance", back_populates="course", cascade="all, delete-orphan")
    grades = relationship("Grade", back_populates="course", cascade="all, delete-orphan")
    enrollment_requests = relationship("EnrollmentRequest", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Course(id={self.id}, code='{self.code}')>"

    @property
    def student_ids(self):
        return [s.id for s in self.students]

    def has_student(self, user_id: str) -> bool:
        return any(s.id == user_id for s in self.students)


class CourseMaterial(Base):
    """A named resource attached to a course."""
    __tablename__ = "course_materials"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(SQLEnum(MaterialType), nullable=False)
    url = Column(String(1000), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    course = relationship("Course", back_populates="materials")

    def __repr__(self):
        return f"<CourseMaterial(id={self.id}, title='{self.title}')>"
