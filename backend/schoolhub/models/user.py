"""User model and the parent/student link table."""

from sqlalchemy import Column, String, DateTime, Date, Enum as SQLEnum, JSON, Integer, Table, ForeignKey
from sqlalchemy.orm import relationship
import bcrypt
import uuid

from ..database import Base
from ..timeutil import utcnow
from .enums import UserRole

BCRYPT_ROUNDS = 10

# Single source of both parent.children and student.parents
parent_links = Table(
    "parent_links",
    Base.metadata,
    Column("parent_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """A person using the platform, with exactly one role."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    federated_uid = Column(String(255), unique=True, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20))
    address = Column(JSON)
    date_of_birth = Column(Date)
    profile_image = Column(String(500), default="default-profile.jpg")

    # Student extension
    grade_level = Column(Integer)
    enrollment_year = Column(Integer)
    student_number = Column(String(50))

    # Teacher extension
    employee_id = Column(String(50))
    department = Column(String(100))
    subjects = Column(JSON)
    qualification = Column(String(255))
    join_date = Column(Date)

    # Parent extension
    parent_relationship = Column(String(50))

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    children = relationship(
        "User",
        secondary=parent_links,
        primaryjoin=lambda: User.id == parent_links.c.parent_id,
        secondaryjoin=lambda: User.id == parent_links.c.student_id,
        back_populates="parents",
    )
    parents = relationship(
        "User",
        secondary=parent_links,
        primaryjoin=lambda: User.id == parent_links.c.student_id,
        secondaryjoin=lambda: User.id == parent_links.c.parent_id,
        back_populates="children",
    )
    enrolled_courses = relationship("Course", secondary="course_students", back_populates="students")
    teaching_courses = relationship("Course", back_populates="teacher")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"

    def set_password(self, password: str) -> None:
        """Hash and set the user's password."""
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        self.password_hash = bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str) -> bool:
        """Verify the provided password against the stored hash."""
        if not self.password_hash:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), self.password_hash.encode("utf-8"))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.teacher

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.parent

    @property
    def student_details(self):
        """Role extension as exposed over the API; None unless a student."""
        if not self.is_student:
            return None
        return {
            "grade": self.grade_level,
            "enrollmentYear": self.enrollment_year,
            "studentId": self.student_number,
            "parentIds": [p.id for p in self.parents],
        }

    @property
    def teacher_details(self):
        if not self.is_teacher:
            return None
        return {
            "employeeId": self.employee_id,
            "department": self.department,
            "subjects": self.subjects or [],
            "qualification": self.qualification,
            "joinDate": self.join_date.isoformat() if self.join_date else None,
        }

    @property
    def parent_details(self):
        if not self.is_parent:
            return None
        return {
            "studentIds": [c.id for c in self.children],
            "relationship": self.parent_relationship,
        }
