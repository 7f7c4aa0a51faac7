"""User administration and relation lookups."""

import logging
from typing import Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, Invalid
from ..models import User, UserRole
from ..schemas.user import ProfileFields, UserCreate, UserOut, UserUpdate
from ..security.policy import Action, check
from ..security.scope import enrolled_in
from .base import DomainService

logger = logging.getLogger(__name__)

_EXTENSION_COLUMNS = {
    UserRole.student: ("grade_level", "enrollment_year", "student_number"),
    UserRole.teacher: ("employee_id", "department", "subjects", "qualification", "join_date"),
    UserRole.parent: ("parent_relationship",),
}


def _linked_users(db: Session, ids: List[str], role: UserRole, field: str) -> List[User]:
    users = db.query(User).filter(User.id.in_(ids)).all() if ids else []
    found = {u.id for u in users}
    missing = [i for i in ids if i not in found]
    if missing:
        raise Invalid(field, f"unknown users: {', '.join(missing)}")
    wrong = [u.id for u in users if u.role != role]
    if wrong:
        raise Invalid(field, f"users must have role {role.value}: {', '.join(wrong)}")
    return users


def clear_extensions(user: User, role: UserRole):
    for column in _EXTENSION_COLUMNS.get(role, ()):
        setattr(user, column, None)
    if role == UserRole.student:
        user.parents = []
    elif role == UserRole.parent:
        user.children = []


def apply_profile(db: Session, user: User, data: ProfileFields):
    """Copy the profile and role extension fields the caller actually sent."""
    sent = data.model_fields_set
    for name in ("phone", "date_of_birth", "profile_image"):
        if name in sent:
            setattr(user, name, getattr(data, name))
    if "address" in sent:
        user.address = data.address.model_dump(by_alias=True) if data.address else None

    if "student_details" in sent and data.student_details is not None:
        details = data.student_details
        user.grade_level = details.grade
        user.enrollment_year = details.enrollment_year
        user.student_number = details.student_id
        if details.parent_ids is not None:
            user.parents = _linked_users(db, details.parent_ids, UserRole.parent, "studentDetails.parentIds")
    if "teacher_details" in sent and data.teacher_details is not None:
        details = data.teacher_details
        user.employee_id = details.employee_id
        user.department = details.department
        user.subjects = details.subjects
        user.qualification = details.qualification
        user.join_date = details.join_date
    if "parent_details" in sent and data.parent_details is not None:
        details = data.parent_details
        user.parent_relationship = details.relationship
        if details.student_ids is not None:
            user.children = _linked_users(db, details.student_ids, UserRole.student, "parentDetails.studentIds")


class UserService(DomainService):
    model = User
    schema = UserOut
    entity = "User"

    def list(self, params: Dict[str, str], base=None) -> Dict:
        check(Action.USER_ADMIN, self.principal)
        return super().list(params, base)

    def get(self, id: str) -> User:
        check(Action.USER_ADMIN, self.principal)
        return super().get(id)

    def _ensure_email_free(self, email: str, exclude_id: str = None):
        query = self.db.query(User).filter(User.email == email)
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise Conflict("Email already registered", {"email": email})

    def create(self, data: UserCreate) -> User:
        check(Action.USER_ADMIN, self.principal)
        self._ensure_email_free(data.email)
        user = User(email=data.email, role=data.role, first_name=data.first_name, last_name=data.last_name)
        user.set_password(data.password)
        apply_profile(self.db, user, data)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Admin {self.principal.id} created {user.role.value} {user.id}")
        return user

    def update(self, id: str, data: UserUpdate) -> User:
        check(Action.USER_ADMIN, self.principal)
        user = self.load(User, id, self.entity)
        role = data.role or user.role
        try:
            data.check_extensions(role)
        except ValueError as e:
            raise Invalid(None, str(e))

        if data.email and data.email.lower() != user.email:
            self._ensure_email_free(data.email.lower(), exclude_id=user.id)
            user.email = data.email.lower()
        for name in ("first_name", "last_name"):
            if getattr(data, name) is not None:
                setattr(user, name, getattr(data, name))
        if role != user.role:
            clear_extensions(user, user.role)
            user.role = role
        apply_profile(self.db, user, data)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, id: str):
        check(Action.USER_ADMIN, self.principal)
        user = self.load(User, id, self.entity)
        try:
            self.db.delete(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("User is still referenced by courses or academic records", {"user": id})
        logger.info(f"Admin {self.principal.id} deleted user {id}")

    def children(self) -> List[User]:
        """Students linked to the calling parent."""
        check(Action.LIST_CHILDREN, self.principal)
        if not self.principal.children:
            return []
        return (
            self.db.query(User)
            .filter(User.id.in_(self.principal.children), User.role == UserRole.student)
            .order_by(User.last_name, User.first_name)
            .all()
        )

    def teachers(self) -> List[User]:
        """Distinct teachers of the courses the calling student is enrolled in."""
        check(Action.LIST_TEACHERS, self.principal)
        return (
            self.db.query(User)
            .filter(User.teaching_courses.any(enrolled_in([self.principal.id])))
            .order_by(User.last_name, User.first_name)
            .all()
        )
