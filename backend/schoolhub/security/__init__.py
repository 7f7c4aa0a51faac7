"""Principal, visibility predicates and admission rules."""

from .principal import Principal
from .scope import visibility, scoped, is_visible, get_visible
from .policy import Action, check, report_subject

__all__ = [
    "Principal",
    "visibility",
    "scoped",
    "is_visible",
    "get_visible",
    "Action",
    "check",
    "report_subject",
]
