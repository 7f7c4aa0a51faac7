"""The authenticated caller as seen by scope and policy checks."""

from dataclasses import dataclass, field
from typing import FrozenSet

from ..models import User, UserRole


@dataclass(frozen=True)
class Principal:
    id: str
    role: UserRole
    children: FrozenSet[str] = field(default_factory=frozenset)
    parents: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        """Snapshot a user and its parent/student links."""
        children = frozenset(c.id for c in user.children) if user.role == UserRole.parent else frozenset()
        parents = frozenset(p.id for p in user.parents) if user.role == UserRole.student else frozenset()
        return cls(id=user.id, role=user.role, children=children, parents=parents)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.teacher

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.student

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.parent
