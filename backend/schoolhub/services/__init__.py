"""Domain services, one per entity."""
from .assignments import AssignmentService
from .attendance import AttendanceService
from .courses import CourseService
from .enrollment_requests import EnrollmentRequestService
from .grades import GradeService
from .notifications import NotificationService
from .users import UserService

__all__ = [
    'AssignmentService',
    'AttendanceService',
    'CourseService',
    'EnrollmentRequestService',
    'GradeService',
    'NotificationService',
    'UserService',
]
