"""Side effects of accepted state transitions.

Services describe what happened with one of the transition values below and
hand it to ``EffectDispatcher.commit``. Derived grades are written in the same
transaction as the state change; notifications are written afterwards in a
transaction of their own and pushed to connected sockets. A failure while
notifying is logged and never undoes the state change.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .database import upsert
from .models import (
    Assignment,
    Attendance,
    EnrollmentRequest,
    EnrollmentStatus,
    Grade,
    GradeType,
    Notification,
    NotificationType,
    Priority,
    ResourceType,
    Submission,
)
from .realtime import RoomHub, get_hub
from .schemas.notification import NotificationOut
from .timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass
class AssignmentPublished:
    assignment: Assignment
    actor_id: str


@dataclass
class SubmissionReceived:
    submission: Submission
    actor_id: str


@dataclass
class SubmissionGraded:
    submission: Submission
    actor_id: str
    publish_grade: bool = False
    # Set while materializing: the derived grade and whether this grading published it
    grade: Optional[Grade] = None
    grade_published: bool = False


@dataclass
class AttendanceRecorded:
    record: Attendance
    actor_id: str


@dataclass
class GradePublished:
    grade: Grade
    actor_id: str


@dataclass
class EnrollmentDecided:
    request: EnrollmentRequest
    actor_id: str


def _note(recipient_id: str, type: NotificationType, title: str, message: str, priority: Priority,
          resource_type: ResourceType, resource_id: str, sender_id: Optional[str]) -> Dict:
    return {
        "recipient_id": recipient_id,
        "sender_id": sender_id,
        "type": type,
        "title": title,
        "message": message,
        "priority": priority,
        "resource_type": resource_type,
        "resource_id": resource_id,
    }


class EffectDispatcher:
    """Sole producer of notifications and materialized grades."""

    def __init__(self, db: Session, hub: RoomHub = None):
        self.db = db
        self.hub = hub or get_hub()

    def commit(self, transition) -> Optional[Grade]:
        """Commit the caller's transaction together with derived writes, then notify."""
        grade = self._materialize(transition)
        self.db.commit()
        self.notify(transition)
        return grade

    def _materialize(self, transition) -> Optional[Grade]:
        if not isinstance(transition, SubmissionGraded):
            return None
        submission = transition.submission
        assignment = submission.assignment
        grade, created = upsert(
            self.db,
            Grade,
            key={
                "student_id": submission.student_id,
                "course_id": assignment.course_id,
                "assignment_id": assignment.id,
                "type": GradeType.assignment,
            },
            values={
                "score": submission.score,
                "max_score": assignment.total_points,
                "comments": submission.feedback,
                "graded_by": transition.actor_id,
                "graded_at": utcnow(),
            },
            on_create={"weight": 1, "is_published": transition.publish_grade},
        )
        was_published = not created and grade.is_published
        if transition.publish_grade:
            grade.is_published = True
        grade.derive()
        transition.grade = grade
        transition.grade_published = bool(grade.is_published) and not was_published
        logger.info(f"{'Created' if created else 'Updated'} grade for submission {submission.id}")
        return grade

    def notify(self, transition) -> List[Notification]:
        """Persist and push the notifications implied by ``transition``."""
        try:
            rows = [Notification(**spec) for spec in self._notifications_for(transition)]
            if not rows:
                return []
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Failed to write notifications for {type(transition).__name__}")
            return []
        for row in rows:
            self.push(row)
        logger.info(f"{type(transition).__name__}: {len(rows)} notification(s) sent")
        return rows

    def push(self, notification: Notification) -> bool:
        """Advisory realtime delivery of a persisted notification."""
        payload = NotificationOut.model_validate(notification).dump()
        payload["to"] = notification.recipient_id
        return self.hub.emit(notification.recipient_id, "notification", payload)

    def _notifications_for(self, transition) -> List[Dict]:
        if isinstance(transition, AssignmentPublished):
            assignment = transition.assignment
            course = assignment.course
            return [
                _note(student.id, NotificationType.assignment, "New Assignment",
                      f'A new assignment "{assignment.title}" has been posted for {course.name}',
                      Priority.normal, ResourceType.assignment, assignment.id, transition.actor_id)
                for student in course.students
            ]

        if isinstance(transition, SubmissionReceived):
            submission = transition.submission
            assignment = submission.assignment
            return [
                _note(assignment.course.teacher_id, NotificationType.assignment, "Assignment Submission",
                      f'A student has submitted the assignment "{assignment.title}"',
                      Priority.normal, ResourceType.submission, submission.id, transition.actor_id)
            ]

        if isinstance(transition, SubmissionGraded):
            submission = transition.submission
            notes = [
                _note(submission.student_id, NotificationType.grade, "Assignment Graded",
                      f'Your submission for "{submission.assignment.title}" has been graded',
                      Priority.high, ResourceType.submission, submission.id, transition.actor_id)
            ]
            if transition.grade_published:
                notes.extend(self._parent_grade_notes(transition.grade, transition.actor_id))
            return notes

        if isinstance(transition, AttendanceRecorded):
            record = transition.record
            if not record.needs_follow_up:
                return []
            status = record.status.value
            title = f"Attendance: {status.capitalize()}"
            when = f"{record.course.name} on {record.date.isoformat()}"
            student = record.student
            notes = [
                _note(student.id, NotificationType.attendance, title, f"You were marked as {status} for {when}",
                      Priority.normal, ResourceType.attendance, record.id, transition.actor_id)
            ]
            notes.extend(
                _note(parent.id, NotificationType.attendance, title,
                      f"{student.full_name} was marked as {status} for {when}",
                      Priority.high, ResourceType.attendance, record.id, transition.actor_id)
                for parent in student.parents
            )
            return notes

        if isinstance(transition, GradePublished):
            grade = transition.grade
            student = grade.student
            kind = grade.type.value
            notes = [
                _note(student.id, NotificationType.grade, "New Grade Posted",
                      f"A new grade has been posted for {grade.course.name}: {kind}",
                      Priority.high, ResourceType.grade, grade.id, transition.actor_id)
            ]
            notes.extend(self._parent_grade_notes(grade, transition.actor_id))
            return notes

        if isinstance(transition, EnrollmentDecided):
            request = transition.request
            approved = request.status == EnrollmentStatus.approved
            verdict = "approved" if approved else "rejected"
            return [
                _note(request.student_id, NotificationType.system, f"Enrollment Request {verdict.capitalize()}",
                      f"Your request to join {request.course.name} was {verdict}",
                      Priority.normal, ResourceType.course, request.course_id, transition.actor_id)
            ]

        raise TypeError(f"Unknown transition {type(transition).__name__}")

    def _parent_grade_notes(self, grade: Grade, actor_id: str) -> List[Dict]:
        student = grade.student
        return [
            _note(parent.id, NotificationType.grade, "New Grade Posted",
                  f"A new grade has been posted for {student.full_name} in {grade.course.name}: {grade.type.value}",
                  Priority.high, ResourceType.grade, grade.id, actor_id)
            for parent in student.parents
        ]
