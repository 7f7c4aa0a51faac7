"""Shared enums for models, schemas and policy."""
import enum


class UserRole(enum.Enum):
    admin = "admin"
    teacher = "teacher"
    student = "student"
    parent = "parent"


class Semester(enum.Enum):
    Fall = "Fall"
    Spring = "Spring"
    Summer = "Summer"


class MaterialType(enum.Enum):
    file = "file"
    video = "video"
    link = "link"
    text = "text"
    other = "other"


class AssignmentType(enum.Enum):
    Homework = "Homework"
    Quiz = "Quiz"
    Test = "Test"
    Project = "Project"
    Essay = "Essay"
    Other = "Other"


class SubmissionStatus(enum.Enum):
    submitted = "submitted"
    graded = "graded"
    returned = "returned"


class AttendanceStatus(enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    excused = "excused"


class GradeType(enum.Enum):
    assignment = "assignment"
    quiz = "quiz"
    test = "test"
    project = "project"
    midterm = "midterm"
    final = "final"
    participation = "participation"
    other = "other"


class EnrollmentStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class NotificationType(enum.Enum):
    assignment = "assignment"
    grade = "grade"
    attendance = "attendance"
    announcement = "announcement"
    message = "message"
    system = "system"


class ResourceType(enum.Enum):
    assignment = "assignment"
    course = "course"
    grade = "grade"
    attendance = "attendance"
    user = "user"
    submission = "submission"


class Priority(enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
