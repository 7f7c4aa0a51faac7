"""Course schemas."""

from typing import List, Optional

from pydantic import Field, field_validator

from ..models.enums import MaterialType, Semester
from .common import CamelModel, UserBrief, UTCDateTime, ref_in

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class ScheduleSlot(CamelModel):
    day: str
    start_time: str
    end_time: str
    room: Optional[str] = None

    @field_validator("day")
    @classmethod
    def valid_day(cls, v: str) -> str:
        if v not in DAYS:
            raise ValueError(f"day must be one of {', '.join(DAYS)}")
        return v


class CourseCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    grade_level: Optional[int] = Field(None, ge=0, le=13)
    academic_year: str
    semester: Semester
    schedule: List[ScheduleSlot] = []
    teacher: Optional[str] = ref_in("teacher", None)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.strip().upper()


class CourseUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    grade_level: Optional[int] = Field(None, ge=0, le=13)
    academic_year: Optional[str] = None
    semester: Optional[Semester] = None
    schedule: Optional[List[ScheduleSlot]] = None
    teacher: Optional[str] = ref_in("teacher", None)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class StudentIds(CamelModel):
    student_ids: List[str] = Field(..., min_length=1)


class MaterialCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: MaterialType = MaterialType.link
    url: str = Field(..., min_length=1)


class MaterialOut(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    type: MaterialType
    url: str
    uploaded_at: Optional[UTCDateTime] = None


class CourseOut(CamelModel):
    id: str
    code: str
    name: str
    description: str
    grade_level: Optional[int] = None
    academic_year: str
    semester: Semester
    teacher: Optional[UserBrief] = None
    students: List[str] = Field(default_factory=list, validation_alias="student_ids", serialization_alias="students")
    schedule: Optional[list] = None
    materials: List[MaterialOut] = []
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None
