"""Courses, their enrollment sets and materials."""

import logging
from typing import Dict, List, Optional

from ..errors import Conflict, Invalid, NotFound
from ..models import Course, CourseMaterial, EnrollmentRequest, User, UserRole
from ..schemas.common import UserBrief
from ..schemas.course import CourseCreate, CourseOut, CourseUpdate, MaterialCreate, MaterialOut
from ..security.policy import Action, check
from .base import DomainService

logger = logging.getLogger(__name__)


class CourseService(DomainService):
    model = Course
    schema = CourseOut
    entity = "Course"

    def detail(self, id: str) -> Dict:
        """Course body; staff also see the students who could still be enrolled."""
        course = self.get(id)
        data = self.serialize(course)
        if self.principal.is_admin or self.principal.is_teacher:
            enrolled = set(course.student_ids)
            available = (
                self.db.query(User)
                .filter(User.role == UserRole.student)
                .order_by(User.last_name, User.first_name)
                .all()
            )
            data["availableStudents"] = [
                UserBrief.model_validate(s).dump() for s in available if s.id not in enrolled
            ]
        return data

    def _teacher(self, teacher_id: Optional[str]) -> Optional[User]:
        if teacher_id is None:
            return None
        return self.load(User, teacher_id, "Teacher")

    def _ensure_code_free(self, code: str, exclude_id: str = None):
        query = self.db.query(Course).filter(Course.code == code)
        if exclude_id:
            query = query.filter(Course.id != exclude_id)
        if query.first() is not None:
            raise Conflict(f"Course code {code} already exists", {"code": code})

    def create(self, data: CourseCreate) -> Course:
        teacher = self._teacher(data.teacher) if self.principal.is_admin else None
        check(Action.COURSE_CREATE, self.principal, teacher=teacher)
        if self.principal.is_teacher:
            teacher_id = self.principal.id
        elif teacher is not None:
            teacher_id = teacher.id
        else:
            raise Invalid("teacher", "is required")
        self._ensure_code_free(data.code)

        course = Course(
            code=data.code,
            name=data.name,
            description=data.description,
            grade_level=data.grade_level,
            academic_year=data.academic_year,
            semester=data.semester,
            schedule=[slot.model_dump(by_alias=True) for slot in data.schedule],
            teacher_id=teacher_id,
        )
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Course {course.code} created by {self.principal.id}")
        return course

    def update(self, id: str, data: CourseUpdate) -> Course:
        course = self.load(Course, id, self.entity)
        teacher = self._teacher(data.teacher)
        check(Action.COURSE_UPDATE, self.principal, course, teacher=teacher)

        changes = data.model_dump(exclude_unset=True, exclude={"teacher", "schedule"})
        if "code" in changes and changes["code"] != course.code:
            self._ensure_code_free(changes["code"], exclude_id=course.id)
        for name, value in changes.items():
            if value is not None:
                setattr(course, name, value)
        if data.schedule is not None:
            course.schedule = [slot.model_dump(by_alias=True) for slot in data.schedule]
        if teacher is not None:
            course.teacher_id = teacher.id
        self.db.commit()
        self.db.refresh(course)
        return course

    def delete(self, id: str):
        course = self.load(Course, id, self.entity)
        check(Action.COURSE_DELETE, self.principal, course)
        self.db.delete(course)
        self.db.commit()
        logger.info(f"Course {id} deleted by {self.principal.id}")

    def _students(self, ids: List[str]) -> List[User]:
        return self.db.query(User).filter(User.id.in_(ids)).all()

    def enroll(self, id: str, student_ids: List[str]) -> Course:
        course = self.load(Course, id, self.entity)
        requested = list(dict.fromkeys(student_ids))
        students = self._students(requested)
        check(Action.COURSE_ENROLL, self.principal, course, requested=requested, students=students)
        enrolled = set(course.student_ids)
        for student in students:
            if student.id not in enrolled:
                course.students.append(student)
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Enrolled {len(students)} student(s) in course {id}")
        return course

    def unenroll(self, id: str, student_ids: List[str]) -> Course:
        course = self.load(Course, id, self.entity)
        requested = list(dict.fromkeys(student_ids))
        students = self._students(requested)
        check(Action.COURSE_UNENROLL, self.principal, course, requested=requested, students=students)
        removing = set(requested)
        course.students = [s for s in course.students if s.id not in removing]
        # Removed students may ask to join again
        (
            self.db.query(EnrollmentRequest)
            .filter(EnrollmentRequest.course_id == course.id, EnrollmentRequest.student_id.in_(removing))
            .delete(synchronize_session="fetch")
        )
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Unenrolled {len(removing)} student(s) from course {id}")
        return course

    def materials(self, id: str) -> List[Dict]:
        course = self.get(id)
        return [MaterialOut.model_validate(m).dump() for m in course.materials]

    def check_materials(self, id: str) -> Course:
        course = self.load(Course, id, self.entity)
        check(Action.COURSE_MATERIALS, self.principal, course)
        return course

    def add_material(self, id: str, data: MaterialCreate) -> CourseMaterial:
        course = self.check_materials(id)
        material = CourseMaterial(
            course_id=course.id,
            title=data.title,
            description=data.description,
            type=data.type,
            url=data.url,
        )
        self.db.add(material)
        self.db.commit()
        self.db.refresh(material)
        return material

    def remove_material(self, id: str, material_id: str):
        course = self.check_materials(id)
        material = next((m for m in course.materials if m.id == material_id), None)
        if material is None:
            raise NotFound("Material", material_id)
        course.materials.remove(material)
        self.db.commit()
