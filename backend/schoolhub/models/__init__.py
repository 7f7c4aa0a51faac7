"""SQLAlchemy models for the school platform."""

from .enums import (
    UserRole,
    Semester,
    MaterialType,
    AssignmentType,
    SubmissionStatus,
    AttendanceStatus,
    GradeType,
    EnrollmentStatus,
    NotificationType,
    ResourceType,
    Priority,
)
from .user import User, parent_links
from .course import Course, CourseMaterial, course_students
from .assignment import Assignment
from .submission import Submission
from .attendance import Attendance
from .grade import Grade, percentage_of, letter_for
from .enrollment_request import EnrollmentRequest
from .notification import Notification

__all__ = [
    "UserRole",
    "Semester",
    "MaterialType",
    "AssignmentType",
    "SubmissionStatus",
    "AttendanceStatus",
    "GradeType",
    "EnrollmentStatus",
    "NotificationType",
    "ResourceType",
    "Priority",
    "User",
    "parent_links",
    "Course",
    "CourseMaterial",
    "course_students",
    "Assignment",
    "Submission",
    "Attendance",
    "Grade",
    "percentage_of",
    "letter_for",
    "EnrollmentRequest",
    "Notification",
]
