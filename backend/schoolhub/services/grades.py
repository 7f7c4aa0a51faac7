"""Grades, bulk grade entry and course grade summaries."""

import logging
from typing import Dict, List, Optional

from ..database import upsert
from ..effects import GradePublished
from ..errors import Failure, Invalid
from ..models import Assignment, Course, Grade
from ..models.grade import letter_for
from ..schemas.common import BulkResult
from ..schemas.grade import BulkGradeEntry, BulkGrades, GradeCreate, GradeOut
from ..security.policy import Action, check, report_subject
from ..timeutil import utcnow
from .base import DomainService

logger = logging.getLogger(__name__)


class GradeService(DomainService):
    model = Grade
    schema = GradeOut
    entity = "Grade"
    default_sort = "-gradedAt"

    def _assignment(self, course: Course, assignment_id: Optional[str]) -> Optional[Assignment]:
        if assignment_id is None:
            return None
        assignment = self.load(Assignment, assignment_id, "Assignment")
        if assignment.course_id != course.id:
            raise Invalid("assignment", "does not belong to this course")
        return assignment

    def _write(self, course: Course, assignment: Optional[Assignment], type, student_id: str, entry) -> Grade:
        check(Action.GRADE_RECORD, self.principal, course, student_id=student_id)
        values = {
            "score": entry.score,
            "max_score": entry.max_score,
            "comments": entry.comments,
            "graded_by": self.principal.id,
            "graded_at": utcnow(),
        }
        if entry.weight is not None:
            values["weight"] = entry.weight
        grade, created = upsert(
            self.db,
            Grade,
            key={
                "student_id": student_id,
                "course_id": course.id,
                "assignment_id": assignment.id if assignment else None,
                "type": type,
            },
            values=values,
            on_create={"is_published": False},
        )
        # Publication only ever moves forward
        publishing = entry.is_published and not grade.is_published
        if publishing:
            grade.is_published = True
        grade.derive()
        self.db.flush()

        if publishing:
            self.effects.commit(GradePublished(grade, self.principal.id))
            logger.info(f"Grade {grade.id} published for student {student_id}")
        else:
            self.db.commit()
        self.db.refresh(grade)
        return grade

    def record(self, data: GradeCreate) -> Grade:
        """Create or update the grade keyed by (student, course, assignment, type)."""
        course = self.load(Course, data.course, "Course")
        assignment = self._assignment(course, data.assignment)
        return self._write(course, assignment, data.type, data.student, data)

    def bulk(self, data: BulkGrades) -> List[Dict]:
        course = self.load(Course, data.course, "Course")
        assignment = self._assignment(course, data.assignment)
        check(Action.GRADE_RECORD, self.principal, course)
        return [self._bulk_entry(course, assignment, data.type, entry) for entry in data.grades]

    def _bulk_entry(self, course: Course, assignment: Optional[Assignment], type, entry: BulkGradeEntry) -> Dict:
        try:
            grade = self._write(course, assignment, type, entry.student, entry)
        except Failure as e:
            self.db.rollback()
            return BulkResult(student=entry.student, success=False, message=e.message).model_dump(exclude_none=True)
        return BulkResult(student=entry.student, success=True, data=self.serialize(grade)).model_dump(
            exclude_none=True
        )

    def summary(self, student_id: Optional[str] = None, course_id: Optional[str] = None) -> Dict:
        """Weighted mean of a student's published grade percentages in one course."""
        course = self.load(Course, course_id, "Course") if course_id else None
        student_id, course_id = report_subject(
            self.principal, student_id, course, require_course_for_student=True, require_both=True
        )
        grades = (
            self.db.query(Grade)
            .filter(Grade.student_id == student_id, Grade.course_id == course_id, Grade.is_published.is_(True))
            .all()
        )
        total_weight = sum(g.weight for g in grades)
        if not grades:
            return {"percentage": 0, "letterGrade": "N/A", "totalGrades": 0}
        percentage = sum(g.percentage * g.weight for g in grades) / total_weight if total_weight else 0
        percentage = round(percentage, 2)
        return {"percentage": percentage, "letterGrade": letter_for(percentage), "totalGrades": len(grades)}
