"""Request and response schemas."""

from .common import CamelModel, UserBrief, BulkResult
from .user import UserCreate, UserUpdate, UserOut, RegisterRequest
from .course import CourseCreate, CourseUpdate, CourseOut, MaterialCreate, MaterialOut, StudentIds
from .assignment import (
    Attachment,
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentOut,
    SubmissionCreate,
    SubmissionGrade,
    SubmissionOut,
)
from .attendance import AttendanceCreate, BulkAttendance, AttendanceOut
from .grade import GradeCreate, BulkGrades, GradeOut
from .enrollment_request import EnrollmentDecision, EnrollmentRequestOut, EnrollmentRequestDetail
from .notification import NotificationCreate, NotificationOut

__all__ = [
    "CamelModel",
    "UserBrief",
    "BulkResult",
    "UserCreate",
    "UserUpdate",
    "UserOut",
    "RegisterRequest",
    "CourseCreate",
    "CourseUpdate",
    "CourseOut",
    "MaterialCreate",
    "MaterialOut",
    "StudentIds",
    "Attachment",
    "AssignmentCreate",
    "AssignmentUpdate",
    "AssignmentOut",
    "SubmissionCreate",
    "SubmissionGrade",
    "SubmissionOut",
    "AttendanceCreate",
    "BulkAttendance",
    "AttendanceOut",
    "GradeCreate",
    "BulkGrades",
    "GradeOut",
    "EnrollmentDecision",
    "EnrollmentRequestOut",
    "EnrollmentRequestDetail",
    "NotificationCreate",
    "NotificationOut",
]
