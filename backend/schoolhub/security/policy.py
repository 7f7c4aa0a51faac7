"""Admission rules for every mutation, keyed by action.

Services call ``policy.check(Action.X, principal, target, **context)`` before
touching the store. A rule returns quietly when the action is admissible and
raises a ``Failure`` otherwise.
"""

import enum
import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..errors import Conflict, FailedPrecondition, Forbidden, Invalid
from ..models import Assignment, Course, EnrollmentRequest, EnrollmentStatus, User, UserRole
from ..timeutil import utcnow
from .principal import Principal

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    COURSE_CREATE = "course.create"
    COURSE_UPDATE = "course.update"
    COURSE_DELETE = "course.delete"
    COURSE_ENROLL = "course.enroll"
    COURSE_UNENROLL = "course.unenroll"
    COURSE_MATERIALS = "course.materials"
    COURSE_REQUESTS = "course.requests"
    ASSIGNMENT_CREATE = "assignment.create"
    ASSIGNMENT_UPDATE = "assignment.update"
    ASSIGNMENT_DELETE = "assignment.delete"
    ASSIGNMENT_PUBLISH = "assignment.publish"
    SUBMISSION_CREATE = "submission.create"
    SUBMISSION_GRADE = "submission.grade"
    ATTENDANCE_RECORD = "attendance.record"
    GRADE_RECORD = "grade.record"
    ENROLLMENT_REQUEST_CREATE = "enrollment_request.create"
    ENROLLMENT_REQUEST_DECIDE = "enrollment_request.decide"
    ENROLLMENT_REQUEST_CANCEL = "enrollment_request.cancel"
    NOTIFICATION_CREATE = "notification.create"
    NOTIFICATION_OWN = "notification.own"
    USER_ADMIN = "user.admin"
    LIST_CHILDREN = "user.children"
    LIST_TEACHERS = "user.teachers"


def _deny(principal: Principal, action: Action, message: str):
    logger.warning(f"Denied {action.value} for {principal.role.value} {principal.id}: {message}")
    raise Forbidden(message)


def _require_roles(principal: Principal, action: Action, *roles: UserRole):
    if principal.role not in roles:
        _deny(principal, action, f"User role {principal.role.value} is not authorized to access this route")


def _teaches(principal: Principal, course: Course) -> bool:
    return principal.is_teacher and course.teacher_id == principal.id


def _require_course_staff(principal: Principal, action: Action, course: Course, what: str):
    """Admin, or the teacher who owns ``course``."""
    if principal.is_admin or _teaches(principal, course):
        return
    _deny(principal, action, f"Not authorized to {what} this course")


def _staff_only(what: str) -> Callable:
    def rule(principal: Principal, action: Action, course: Course, **ctx):
        _require_course_staff(principal, action, course, what)
    return rule


def _assignment_staff(what: str) -> Callable:
    def rule(principal: Principal, action: Action, assignment: Assignment, **ctx):
        _require_course_staff(principal, action, assignment.course, what)
    return rule


def _course_create(principal: Principal, action: Action, target=None, teacher: Optional[User] = None, **ctx):
    _require_roles(principal, action, UserRole.admin, UserRole.teacher)
    if principal.is_admin and teacher is not None and teacher.role != UserRole.teacher:
        raise Invalid("teacher", "must reference a user with role teacher")


def _course_update(principal: Principal, action: Action, course: Course, teacher: Optional[User] = None, **ctx):
    _require_course_staff(principal, action, course, "update")
    if teacher is not None:
        if not principal.is_admin:
            _deny(principal, action, "Only administrators can reassign a course teacher")
        if teacher.role != UserRole.teacher:
            raise Invalid("teacher", "must reference a user with role teacher")


def _course_delete(principal: Principal, action: Action, course: Course, **ctx):
    _require_roles(principal, action, UserRole.admin)


def _course_membership(principal: Principal, action: Action, course: Course,
                       requested: Iterable[str] = (), students: Iterable[User] = (), **ctx):
    _require_course_staff(principal, action, course, "modify enrollment of")
    found = {u.id: u for u in students}
    missing = [sid for sid in requested if sid not in found]
    if missing:
        raise Invalid("studentIds", f"unknown users: {', '.join(missing)}")
    not_students = [u.id for u in found.values() if u.role != UserRole.student]
    if not_students:
        raise Invalid("studentIds", f"users are not students: {', '.join(not_students)}")


def _submission_create(principal: Principal, action: Action, assignment: Assignment, at=None, **ctx):
    _require_roles(principal, action, UserRole.student)
    if not assignment.course.has_student(principal.id):
        _deny(principal, action, "Not enrolled in this course")
    if not assignment.is_published:
        raise FailedPrecondition("Assignment is not published")
    if not assignment.accepts_submission_at(at or utcnow()):
        raise FailedPrecondition("Assignment due date has passed and late submissions are not allowed")


def _submission_grade(principal: Principal, action: Action, submission, **ctx):
    _require_course_staff(principal, action, submission.assignment.course, "grade submissions for")


def _record_for_student(what: str) -> Callable:
    def rule(principal: Principal, action: Action, course: Course, student_id: str = None, **ctx):
        _require_course_staff(principal, action, course, f"record {what} for")
        if student_id is not None and not course.has_student(student_id):
            raise FailedPrecondition("Student is not enrolled in this course")
    return rule


def _request_create(principal: Principal, action: Action, course: Course,
                    existing: Optional[EnrollmentRequest] = None, **ctx):
    _require_roles(principal, action, UserRole.student)
    if course.has_student(principal.id):
        raise Conflict("You are already enrolled in this course", {"student": principal.id, "course": course.id})
    if existing is not None:
        if existing.is_pending:
            raise Conflict("You already have a pending request for this course", {"request": existing.id})
        if existing.status == EnrollmentStatus.approved:
            raise Conflict("Your request for this course was already approved", {"request": existing.id})


def _request_decide(principal: Principal, action: Action, request: EnrollmentRequest, **ctx):
    _require_course_staff(principal, action, request.course, "respond to enrollment requests for")
    if not request.is_pending:
        raise FailedPrecondition(f"Enrollment request is already {request.status.value}")


def _request_cancel(principal: Principal, action: Action, request: EnrollmentRequest, **ctx):
    if not principal.is_student or request.student_id != principal.id:
        _deny(principal, action, "Not authorized to cancel this enrollment request")
    if not request.is_pending:
        raise FailedPrecondition("Only pending requests can be canceled")


def _notification_create(principal: Principal, action: Action, target=None, **ctx):
    _require_roles(principal, action, UserRole.admin, UserRole.teacher)


def _notification_own(principal: Principal, action: Action, notification, **ctx):
    if notification.recipient_id != principal.id:
        _deny(principal, action, "Not authorized to modify this notification")


def _role_rule(*roles: UserRole) -> Callable:
    def rule(principal: Principal, action: Action, target=None, **ctx):
        _require_roles(principal, action, *roles)
    return rule


RULES: Dict[Action, Callable] = {
    Action.COURSE_CREATE: _course_create,
    Action.COURSE_UPDATE: _course_update,
    Action.COURSE_DELETE: _course_delete,
    Action.COURSE_ENROLL: _course_membership,
    Action.COURSE_UNENROLL: _course_membership,
    Action.COURSE_MATERIALS: _staff_only("manage materials of"),
    Action.COURSE_REQUESTS: _staff_only("view enrollment requests for"),
    Action.ASSIGNMENT_CREATE: _staff_only("create assignments for"),
    Action.ASSIGNMENT_UPDATE: _assignment_staff("update assignments of"),
    Action.ASSIGNMENT_DELETE: _assignment_staff("delete assignments of"),
    Action.ASSIGNMENT_PUBLISH: _assignment_staff("publish assignments of"),
    Action.SUBMISSION_CREATE: _submission_create,
    Action.SUBMISSION_GRADE: _submission_grade,
    Action.ATTENDANCE_RECORD: _record_for_student("attendance"),
    Action.GRADE_RECORD: _record_for_student("grades"),
    Action.ENROLLMENT_REQUEST_CREATE: _request_create,
    Action.ENROLLMENT_REQUEST_DECIDE: _request_decide,
    Action.ENROLLMENT_REQUEST_CANCEL: _request_cancel,
    Action.NOTIFICATION_CREATE: _notification_create,
    Action.NOTIFICATION_OWN: _notification_own,
    Action.USER_ADMIN: _role_rule(UserRole.admin),
    Action.LIST_CHILDREN: _role_rule(UserRole.parent),
    Action.LIST_TEACHERS: _role_rule(UserRole.student),
}


def check(action: Action, principal: Principal, target=None, **context) -> None:
    """Raise a failure unless ``principal`` may perform ``action`` on ``target``."""
    RULES[action](principal, action, target, **context)


def report_subject(principal: Principal, student_id: Optional[str], course: Optional[Course],
                   require_course_for_student: bool = False,
                   require_both: bool = False) -> Tuple[Optional[str], Optional[str]]:
    """Resolve whose attendance or grade report the caller may read.

    Returns the ``(student_id, course_id)`` pair to aggregate over; either may
    be None when the report spans all courses or all students.
    """
    course_id = course.id if course is not None else None
    if principal.is_student:
        if student_id and student_id != principal.id:
            raise Forbidden("Not authorized to access this student's records")
        if require_course_for_student and course is None:
            raise Invalid("courseId", "is required")
        return principal.id, course_id
    if principal.is_parent:
        if not student_id:
            raise Invalid("studentId", "is required")
        if require_both and course is None:
            raise Invalid("courseId", "is required")
        if student_id not in principal.children:
            raise Forbidden("Not authorized to access this student's records")
        return student_id, course_id
    if principal.is_teacher:
        if course is None:
            raise Invalid("courseId", "is required")
        if course.teacher_id != principal.id:
            raise Forbidden("Not authorized to access records for this course")
        if require_both and not student_id:
            raise Invalid("studentId", "is required")
        if require_both and not course.has_student(student_id):
            raise FailedPrecondition("Student is not enrolled in this course")
        return student_id, course_id
    if require_both and (not student_id or course is None):
        raise Invalid(None, "studentId and courseId are required")
    if not student_id and course is None:
        raise Invalid(None, "studentId or courseId is required")
    return student_id, course_id
