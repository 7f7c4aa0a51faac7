"""Enrollment requests: pending -> approved | rejected | canceled.

A rejected request is reopened in place when the student asks again, so a
(student, course) pair never holds more than one row.
"""

import logging
from typing import Dict, List, Optional

from ..effects import EnrollmentDecided
from ..errors import Invalid
from ..models import Course, EnrollmentRequest, EnrollmentStatus, User
from ..schemas.enrollment_request import EnrollmentDecision, EnrollmentRequestDetail, EnrollmentRequestOut
from ..security.policy import Action, check
from ..timeutil import utcnow
from .base import DomainService

logger = logging.getLogger(__name__)


def _status(raw: Optional[str]) -> Optional[EnrollmentStatus]:
    if not raw:
        return None
    try:
        return EnrollmentStatus(raw)
    except ValueError:
        raise Invalid("status", f"must be one of {', '.join(s.value for s in EnrollmentStatus)}")


class EnrollmentRequestService(DomainService):
    model = EnrollmentRequest
    schema = EnrollmentRequestOut
    entity = "Enrollment request"
    default_sort = "-requestDate"

    def _existing(self, course: Course) -> Optional[EnrollmentRequest]:
        return (
            self.db.query(EnrollmentRequest)
            .filter(EnrollmentRequest.course_id == course.id, EnrollmentRequest.student_id == self.principal.id)
            .first()
        )

    def request(self, course_id: str) -> EnrollmentRequest:
        """Ask to join a course, reopening an earlier rejected request."""
        course = self.load(Course, course_id, "Course")
        existing = self._existing(course)
        check(Action.ENROLLMENT_REQUEST_CREATE, self.principal, course, existing=existing)
        if existing is not None:
            existing.reopen()
            request = existing
            logger.info(f"Enrollment request {request.id} reopened")
        else:
            request = EnrollmentRequest(student_id=self.principal.id, course_id=course.id)
            self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Student {self.principal.id} requested enrollment in course {course.id}")
        return request

    def for_course(self, course_id: str, status: Optional[str] = None) -> List[Dict]:
        """Requests for one course, newest first, with the students' names."""
        course = self.load(Course, course_id, "Course")
        check(Action.COURSE_REQUESTS, self.principal, course)
        query = self.db.query(EnrollmentRequest).filter(EnrollmentRequest.course_id == course.id)
        wanted = _status(status)
        if wanted is not None:
            query = query.filter(EnrollmentRequest.status == wanted)
        requests = query.order_by(EnrollmentRequest.request_date.desc(), EnrollmentRequest.id).all()
        return [EnrollmentRequestDetail.model_validate(r).dump() for r in requests]

    def decide(self, id: str, decision: EnrollmentDecision) -> EnrollmentRequest:
        request = self.load(EnrollmentRequest, id, self.entity)
        check(Action.ENROLLMENT_REQUEST_DECIDE, self.principal, request)

        request.status = EnrollmentStatus(decision.status)
        request.response_date = utcnow()
        request.response_by = self.principal.id
        request.notes = decision.notes
        if request.status == EnrollmentStatus.approved:
            course = request.course
            if not course.has_student(request.student_id):
                course.students.append(self.db.get(User, request.student_id))

        self.effects.commit(EnrollmentDecided(request, self.principal.id))
        self.db.refresh(request)
        logger.info(f"Enrollment request {id} {request.status.value} by {self.principal.id}")
        return request

    def cancel(self, id: str):
        request = self.load(EnrollmentRequest, id, self.entity)
        check(Action.ENROLLMENT_REQUEST_CANCEL, self.principal, request)
        self.db.delete(request)
        self.db.commit()
        logger.info(f"Enrollment request {id} canceled")
