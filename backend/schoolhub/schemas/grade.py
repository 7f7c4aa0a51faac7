"""Grade schemas."""

from typing import List, Optional

from pydantic import Field, model_validator

from ..models.enums import GradeType
from .common import CamelModel, UTCDateTime, ref, ref_in


def _score_within_max(score: float, max_score: float):
    if score > max_score:
        raise ValueError("score cannot exceed maxScore")


class GradeCreate(CamelModel):
    student: str = ref_in("student")
    course: str = ref_in("course")
    assignment: Optional[str] = ref_in("assignment", None)
    type: GradeType
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    weight: float = Field(1, ge=0)
    comments: Optional[str] = None
    is_published: bool = False

    @model_validator(mode="after")
    def score_bounds(self):
        _score_within_max(self.score, self.max_score)
        return self


class BulkGradeEntry(CamelModel):
    student: str = ref_in("student")
    score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    weight: Optional[float] = Field(None, ge=0)
    comments: Optional[str] = None
    is_published: bool = False

    @model_validator(mode="after")
    def score_bounds(self):
        _score_within_max(self.score, self.max_score)
        return self


class BulkGrades(CamelModel):
    course: str = ref_in("course")
    assignment: Optional[str] = ref_in("assignment", None)
    type: GradeType
    grades: List[BulkGradeEntry]


class GradeOut(CamelModel):
    id: str
    student: str = ref("student")
    course: str = ref("course")
    assignment: Optional[str] = ref("assignment", None)
    type: GradeType
    score: float
    max_score: float
    percentage: Optional[float] = None
    letter_grade: Optional[str] = None
    weight: float
    comments: Optional[str] = None
    graded_by: str
    graded_at: Optional[UTCDateTime] = None
    is_published: bool
    published_at: Optional[UTCDateTime] = None
