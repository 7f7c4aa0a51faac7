"""Enrollment request schemas."""

from typing import Literal, Optional

from pydantic import Field

from ..models.enums import EnrollmentStatus
from .common import CamelModel, UserBrief, UTCDateTime, ref


class EnrollmentDecision(CamelModel):
    status: Literal["approved", "rejected"]
    notes: Optional[str] = None


class EnrollmentRequestOut(CamelModel):
    id: str
    student: str = ref("student")
    course: str = ref("course")
    status: EnrollmentStatus
    request_date: Optional[UTCDateTime] = None
    response_date: Optional[UTCDateTime] = None
    response_by: Optional[str] = None
    notes: Optional[str] = None


class EnrollmentRequestDetail(EnrollmentRequestOut):
    """Request with the student's name, as listed to the course teacher."""

    student_info: Optional[UserBrief] = Field(None, validation_alias="student", serialization_alias="studentInfo")
