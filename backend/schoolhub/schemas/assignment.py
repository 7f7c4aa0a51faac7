"""Assignment and submission schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..models.enums import AssignmentType, SubmissionStatus
from .common import CamelModel, UTCDateTime, ref, ref_in


class Attachment(CamelModel):
    file_name: str
    file_url: str
    file_type: Optional[str] = None


class AssignmentCreate(CamelModel):
    course: str = ref_in("course")
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    due_date: datetime
    total_points: float = Field(..., ge=0)
    assignment_type: AssignmentType = AssignmentType.Homework
    attachments: List[Attachment] = []
    allow_late_submissions: bool = False
    late_penalty: float = Field(0, ge=0, le=100)
    is_published: bool = False


class AssignmentUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    due_date: Optional[datetime] = None
    total_points: Optional[float] = Field(None, ge=0)
    assignment_type: Optional[AssignmentType] = None
    attachments: Optional[List[Attachment]] = None
    allow_late_submissions: Optional[bool] = None
    late_penalty: Optional[float] = Field(None, ge=0, le=100)
    is_published: Optional[bool] = None


class AssignmentOut(CamelModel):
    id: str
    course: str = ref("course")
    title: str
    description: str
    due_date: UTCDateTime
    total_points: float
    assignment_type: Optional[AssignmentType] = None
    attachments: Optional[list] = None
    allow_late_submissions: bool
    late_penalty: float
    is_published: bool
    created_by: str
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None


class SubmissionCreate(CamelModel):
    content: Optional[str] = None
    attachments: List[Attachment] = []


class SubmissionGrade(CamelModel):
    score: float = Field(..., ge=0)
    feedback: Optional[str] = None
    publish_grade: bool = False


class SubmissionOut(CamelModel):
    id: str
    assignment: str = ref("assignment")
    student: str = ref("student")
    submitted_at: UTCDateTime
    content: Optional[str] = None
    attachments: Optional[list] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    graded_by: Optional[str] = None
    graded_at: Optional[UTCDateTime] = None
    status: SubmissionStatus
    is_late: bool
