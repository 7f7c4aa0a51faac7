"""Assignments and their submissions."""

import logging
from typing import Dict, List

from sqlalchemy import case, func

from ..database import upsert
from ..effects import AssignmentPublished, SubmissionGraded, SubmissionReceived
from ..errors import Invalid
from ..models import Assignment, Course, Grade, Submission, SubmissionStatus
from ..schemas.assignment import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    SubmissionCreate,
    SubmissionGrade,
    SubmissionOut,
)
from ..security.policy import Action, check
from ..security.scope import scoped
from ..timeutil import ensure_utc, utcnow
from .base import DomainService

logger = logging.getLogger(__name__)


def _attachments(items) -> List[Dict]:
    return [a.model_dump(by_alias=True) for a in items]


class AssignmentService(DomainService):
    model = Assignment
    schema = AssignmentOut
    entity = "Assignment"
    default_sort = "-dueDate"

    def _submissions_of(self, assignment: Assignment):
        return scoped(self.db, self.principal, Submission).filter(Submission.assignment_id == assignment.id)

    def stats(self, assignment: Assignment) -> Dict:
        """Submission counts and the average score of graded work."""
        total, late, graded, average = (
            self.db.query(
                func.count(Submission.id),
                func.coalesce(func.sum(case((Submission.is_late.is_(True), 1), else_=0)), 0),
                func.count(Submission.score),
                func.avg(Submission.score),
            )
            .filter(Submission.assignment_id == assignment.id)
            .one()
        )
        return {
            "total": total,
            "onTime": total - late,
            "late": late,
            "graded": graded,
            "averageScore": round(average, 2) if average is not None else None,
        }

    def detail(self, id: str) -> Dict:
        assignment = self.get(id)
        data = self.serialize(assignment)
        submissions = self._submissions_of(assignment).order_by(Submission.submitted_at.desc()).all()
        data["submissions"] = [SubmissionOut.model_validate(s).dump() for s in submissions]
        if self.principal.is_student:
            own = next((s for s in submissions if s.student_id == self.principal.id), None)
            data["hasSubmitted"] = own is not None
            data["submission"] = SubmissionOut.model_validate(own).dump() if own else None
        elif self.principal.is_admin or self.principal.is_teacher:
            data["stats"] = self.stats(assignment)
        return data

    def create(self, data: AssignmentCreate) -> Assignment:
        course = self.load(Course, data.course, "Course")
        check(Action.ASSIGNMENT_CREATE, self.principal, course)
        assignment = Assignment(
            course_id=course.id,
            title=data.title,
            description=data.description,
            due_date=ensure_utc(data.due_date),
            total_points=data.total_points,
            assignment_type=data.assignment_type,
            attachments=_attachments(data.attachments),
            allow_late_submissions=data.allow_late_submissions,
            late_penalty=data.late_penalty,
            is_published=data.is_published,
            created_by=self.principal.id,
        )
        self.db.add(assignment)
        if assignment.is_published:
            self.db.flush()
            self.effects.commit(AssignmentPublished(assignment, self.principal.id))
        else:
            self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"Assignment {assignment.id} created in course {course.id}")
        return assignment

    def update(self, id: str, data: AssignmentUpdate) -> Assignment:
        assignment = self.load(Assignment, id, self.entity)
        check(Action.ASSIGNMENT_UPDATE, self.principal, assignment)
        publishing = bool(data.is_published) and not assignment.is_published
        if publishing:
            check(Action.ASSIGNMENT_PUBLISH, self.principal, assignment)

        changes = data.model_dump(exclude_unset=True, exclude={"attachments", "due_date"})
        for name, value in changes.items():
            if value is not None:
                setattr(assignment, name, value)
        if data.due_date is not None:
            assignment.due_date = ensure_utc(data.due_date)
        if data.attachments is not None:
            assignment.attachments = _attachments(data.attachments)

        if publishing:
            self.effects.commit(AssignmentPublished(assignment, self.principal.id))
            logger.info(f"Assignment {id} published")
        else:
            self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def delete(self, id: str):
        """Delete an assignment with its submissions; its grades are kept and detached."""
        assignment = self.load(Assignment, id, self.entity)
        check(Action.ASSIGNMENT_DELETE, self.principal, assignment)
        self.db.query(Grade).filter(Grade.assignment_id == assignment.id).update(
            {Grade.assignment_id: None}, synchronize_session="fetch"
        )
        self.db.delete(assignment)
        self.db.commit()
        logger.info(f"Assignment {id} deleted by {self.principal.id}")

    def check_update(self, id: str) -> Assignment:
        assignment = self.load(Assignment, id, self.entity)
        check(Action.ASSIGNMENT_UPDATE, self.principal, assignment)
        return assignment

    def add_attachments(self, id: str, files: List[Dict]) -> Assignment:
        assignment = self.check_update(id)
        assignment.attachments = list(assignment.attachments or []) + files
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def submit(self, id: str, data: SubmissionCreate, at=None) -> Submission:
        """Create the caller's submission, or replace the one already on file."""
        assignment = self.load(Assignment, id, self.entity)
        at = ensure_utc(at) if at is not None else utcnow()
        check(Action.SUBMISSION_CREATE, self.principal, assignment, at=at)

        submission, created = upsert(
            self.db,
            Submission,
            key={"assignment_id": assignment.id, "student_id": self.principal.id},
            values={
                "submitted_at": at,
                "content": data.content,
                "attachments": _attachments(data.attachments),
                "status": SubmissionStatus.submitted,
                "score": None,
                "feedback": None,
                "graded_by": None,
                "graded_at": None,
            },
        )
        if not created:
            logger.info(f"Replacing submission {submission.id} for assignment {id}")
        self.db.flush()

        self.effects.commit(SubmissionReceived(submission, self.principal.id))
        self.db.refresh(submission)
        return submission

    def submissions(self, id: str, params: Dict[str, str]) -> Dict:
        assignment = self.get(id)
        compiler = self.compiler(Submission, "-submittedAt")
        return compiler.execute(
            self._submissions_of(assignment), params, lambda s: SubmissionOut.model_validate(s).dump()
        )

    def grade(self, submission_id: str, data: SubmissionGrade) -> Submission:
        """Score a submission and materialize its assignment grade."""
        submission = self.load(Submission, submission_id, "Submission")
        check(Action.SUBMISSION_GRADE, self.principal, submission)
        assignment = submission.assignment
        if data.score > assignment.total_points:
            raise Invalid("score", f"cannot exceed the assignment total of {assignment.total_points}")

        submission.score = data.score
        submission.feedback = data.feedback
        submission.graded_by = self.principal.id
        submission.graded_at = utcnow()
        submission.status = SubmissionStatus.graded
        self.effects.commit(SubmissionGraded(submission, self.principal.id, data.publish_grade))
        self.db.refresh(submission)
        logger.info(f"Submission {submission_id} graded by {self.principal.id}")
        return submission
