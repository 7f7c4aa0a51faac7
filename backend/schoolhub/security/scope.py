"""Visibility predicates: which rows of each table a principal may observe.

Every list query and single-entity read is intersected with the clause
returned by ``visibility``. Services never build these filters themselves.
"""

import logging
from typing import Callable, Dict, Type

from sqlalchemy import and_, false, or_, select, true
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..errors import Forbidden, NotFound
from ..models import (
    Assignment,
    Attendance,
    Course,
    EnrollmentRequest,
    Grade,
    Notification,
    Submission,
    User,
    UserRole,
    course_students,
)
from .principal import Principal

logger = logging.getLogger(__name__)


def enrolled_in(student_ids) -> ColumnElement:
    """Courses with at least one of ``student_ids`` enrolled."""
    return Course.id.in_(
        select(course_students.c.course_id).where(course_students.c.student_id.in_(list(student_ids)))
    )


def _enrolled(principal: Principal) -> ColumnElement:
    """Courses holding the principal (student) or one of its children (parent)."""
    if principal.is_student:
        return enrolled_in([principal.id])
    if principal.is_parent and principal.children:
        return enrolled_in(principal.children)
    return false()


def _own_rows(principal: Principal, column) -> ColumnElement:
    """Rows keyed to the principal (student) or its children (parent)."""
    if principal.is_student:
        return column == principal.id
    if principal.is_parent and principal.children:
        return column.in_(principal.children)
    return false()


def _course_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return Course.teacher_id == principal.id
    return _enrolled(principal)


def _assignment_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return Assignment.course.has(Course.teacher_id == principal.id)
    return and_(Assignment.course.has(_enrolled(principal)), Assignment.is_published.is_(True))


def _submission_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return Submission.assignment.has(Assignment.course.has(Course.teacher_id == principal.id))
    return _own_rows(principal, Submission.student_id)


def _attendance_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return Attendance.course.has(Course.teacher_id == principal.id)
    return _own_rows(principal, Attendance.student_id)


def _grade_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return Grade.course.has(Course.teacher_id == principal.id)
    return and_(_own_rows(principal, Grade.student_id), Grade.is_published.is_(True))


def _enrollment_request_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return EnrollmentRequest.course.has(Course.teacher_id == principal.id)
    return _own_rows(principal, EnrollmentRequest.student_id)


def _notification_scope(principal: Principal) -> ColumnElement:
    return Notification.recipient_id == principal.id


def _user_scope(principal: Principal) -> ColumnElement:
    if principal.is_teacher:
        return or_(User.id == principal.id, User.role == UserRole.student)
    if principal.is_parent and principal.children:
        return or_(User.id == principal.id, User.id.in_(principal.children))
    return User.id == principal.id


_SCOPES: Dict[Type, Callable[[Principal], ColumnElement]] = {
    Course: _course_scope,
    Assignment: _assignment_scope,
    Submission: _submission_scope,
    Attendance: _attendance_scope,
    Grade: _grade_scope,
    EnrollmentRequest: _enrollment_request_scope,
    Notification: _notification_scope,
    User: _user_scope,
}


def visibility(principal: Principal, model: Type) -> ColumnElement:
    """Return the filter selecting the rows of ``model`` visible to ``principal``."""
    if model not in _SCOPES:
        raise KeyError(f"No visibility rule for {model.__name__}")
    # Notifications are personal even for administrators
    if principal.is_admin and model is not Notification:
        return true()
    return _SCOPES[model](principal)


def scoped(db: Session, principal: Principal, model: Type):
    """A query over ``model`` already restricted to what ``principal`` may see."""
    return db.query(model).filter(visibility(principal, model))


def is_visible(db: Session, principal: Principal, obj) -> bool:
    model = type(obj)
    return (
        db.query(model.id).filter(model.id == obj.id, visibility(principal, model)).first() is not None
    )


def get_visible(db: Session, principal: Principal, model: Type, id: str, entity: str = None):
    """Load one row, distinguishing absent (NotFound) from hidden (Forbidden)."""
    entity = entity or model.__name__
    obj = db.get(model, id)
    if obj is None:
        raise NotFound(entity, id)
    if not is_visible(db, principal, obj):
        logger.warning(f"{principal.role.value} {principal.id} denied read of {entity} {id}")
        raise Forbidden(f"Not authorized to access this {entity.lower()}")
    return obj
