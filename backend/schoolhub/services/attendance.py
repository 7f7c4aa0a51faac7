"""Attendance records and attendance statistics."""

import logging
from typing import Dict, List, Optional

from sqlalchemy import case, func

from ..database import upsert
from ..effects import AttendanceRecorded
from ..errors import Failure
from ..models import Attendance, AttendanceStatus, Course
from ..schemas.attendance import AttendanceCreate, AttendanceOut, BulkAttendance, BulkAttendanceEntry
from ..schemas.common import BulkResult
from ..security.policy import Action, check, report_subject
from .base import DomainService

logger = logging.getLogger(__name__)


def _status_count(status: AttendanceStatus):
    return func.coalesce(func.sum(case((Attendance.status == status, 1), else_=0)), 0)


class AttendanceService(DomainService):
    model = Attendance
    schema = AttendanceOut
    entity = "Attendance"
    default_sort = "-date"

    def _write(self, course: Course, student_id: str, day, entry) -> Attendance:
        check(Action.ATTENDANCE_RECORD, self.principal, course, student_id=student_id)
        record, created = upsert(
            self.db,
            Attendance,
            key={"student_id": student_id, "course_id": course.id, "date": day},
            values={
                "status": entry.status,
                "late_minutes": entry.late_minutes,
                "excuse_reason": entry.excuse_reason,
                "excuse_document_url": getattr(entry, "excuse_document_url", None),
                "notes": entry.notes,
                "recorded_by": self.principal.id,
            },
        )
        self.db.flush()
        self.effects.commit(AttendanceRecorded(record, self.principal.id))
        self.db.refresh(record)
        logger.info(f"{'Recorded' if created else 'Updated'} attendance {record.status.value} "
                    f"for student {student_id} in course {course.id} on {day}")
        return record

    def record(self, data: AttendanceCreate) -> Attendance:
        """Record one mark; a second mark for the same day replaces the first."""
        course = self.load(Course, data.course, "Course")
        return self._write(course, data.student, data.date, data)

    def bulk(self, data: BulkAttendance) -> List[Dict]:
        """Record a whole class for one day; each record succeeds or fails alone."""
        course = self.load(Course, data.course, "Course")
        check(Action.ATTENDANCE_RECORD, self.principal, course)
        results = []
        for entry in data.records:
            results.append(self._bulk_entry(course, data.date, entry))
        return results

    def _bulk_entry(self, course: Course, day, entry: BulkAttendanceEntry) -> Dict:
        try:
            record = self._write(course, entry.student, day, entry)
        except Failure as e:
            self.db.rollback()
            return BulkResult(student=entry.student, success=False, message=e.message).model_dump(exclude_none=True)
        return BulkResult(student=entry.student, success=True, data=self.serialize(record)).model_dump(
            exclude_none=True
        )

    def student_stats(self, student_id: str, course_id: Optional[str] = None) -> Dict:
        query = self.db.query(
            func.count(Attendance.id),
            _status_count(AttendanceStatus.present),
            _status_count(AttendanceStatus.absent),
            _status_count(AttendanceStatus.late),
            _status_count(AttendanceStatus.excused),
        ).filter(Attendance.student_id == student_id)
        if course_id:
            query = query.filter(Attendance.course_id == course_id)
        total, present, absent, late, excused = query.one()
        return {
            "totalDays": total,
            "presentDays": present,
            "absentDays": absent,
            "lateDays": late,
            "excusedDays": excused,
            "attendanceRate": round(100.0 * (present + late) / total, 2) if total else 0,
        }

    def course_stats(self, course_id: str) -> List[Dict]:
        rows = (
            self.db.query(
                Attendance.date,
                func.count(Attendance.id),
                _status_count(AttendanceStatus.present),
                _status_count(AttendanceStatus.absent),
                _status_count(AttendanceStatus.late),
                _status_count(AttendanceStatus.excused),
            )
            .filter(Attendance.course_id == course_id)
            .group_by(Attendance.date)
            .order_by(Attendance.date)
            .all()
        )
        return [
            {
                "date": day.isoformat(),
                "totalStudents": total,
                "presentStudents": present,
                "absentStudents": absent,
                "lateStudents": late,
                "excusedStudents": excused,
            }
            for day, total, present, absent, late, excused in rows
        ]

    def stats(self, student_id: Optional[str] = None, course_id: Optional[str] = None):
        course = self.load(Course, course_id, "Course") if course_id else None
        student_id, course_id = report_subject(self.principal, student_id, course)
        if student_id:
            return self.student_stats(student_id, course_id)
        return self.course_stats(course_id)
