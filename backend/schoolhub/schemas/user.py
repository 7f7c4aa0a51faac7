"""User schemas."""

from datetime import date
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from ..models.enums import UserRole
from .common import CamelModel, UTCDateTime


class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class StudentDetails(CamelModel):
    grade: Optional[int] = Field(None, ge=0, le=13)
    enrollment_year: Optional[int] = None
    student_id: Optional[str] = None
    parent_ids: Optional[List[str]] = None


class TeacherDetails(CamelModel):
    employee_id: Optional[str] = None
    department: Optional[str] = None
    subjects: Optional[List[str]] = None
    qualification: Optional[str] = None
    join_date: Optional[date] = None


class ParentDetails(CamelModel):
    student_ids: Optional[List[str]] = None
    relationship: Optional[str] = None


class ProfileFields(CamelModel):
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[Address] = None
    date_of_birth: Optional[date] = None
    profile_image: Optional[str] = None
    student_details: Optional[StudentDetails] = None
    teacher_details: Optional[TeacherDetails] = None
    parent_details: Optional[ParentDetails] = None

    def check_extensions(self, role: UserRole):
        """Reject role extensions that do not belong to ``role``."""
        owners = {
            "student_details": UserRole.student,
            "teacher_details": UserRole.teacher,
            "parent_details": UserRole.parent,
        }
        for field, owner in owners.items():
            if getattr(self, field) is not None and role != owner:
                raise ValueError(f"{field} is only allowed for role {owner.value}")


class UserCreate(ProfileFields):
    """Admin-side user creation."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.student
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.lower()

    @model_validator(mode="after")
    def extensions_match_role(self):
        self.check_extensions(self.role)
        return self


class RegisterRequest(UserCreate):
    """Self-service sign up; admin accounts are not self-provisioned."""

    @field_validator("role")
    @classmethod
    def no_self_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("role must be one of student, teacher, parent")
        return v


class UserUpdate(ProfileFields):
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)


class UserOut(CamelModel):
    id: str
    email: str
    role: UserRole
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[dict] = None
    date_of_birth: Optional[date] = None
    profile_image: Optional[str] = None
    student_details: Optional[dict] = None
    teacher_details: Optional[dict] = None
    parent_details: Optional[dict] = None
    created_at: Optional[UTCDateTime] = None
