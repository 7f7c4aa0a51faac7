"""Attendance schemas."""

import datetime as dt
from typing import List, Optional

from pydantic import Field, field_validator

from ..models.enums import AttendanceStatus
from ..timeutil import to_day
from .common import CamelModel, UTCDateTime, ref, ref_in


class AttendanceCreate(CamelModel):
    student: str = ref_in("student")
    course: str = ref_in("course")
    date: dt.date
    status: AttendanceStatus = AttendanceStatus.present
    late_minutes: int = Field(0, ge=0)
    excuse_reason: Optional[str] = None
    excuse_document_url: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def calendar_day(cls, v):
        return to_day(v)


class BulkAttendanceEntry(CamelModel):
    student: str = ref_in("student")
    status: AttendanceStatus = AttendanceStatus.present
    late_minutes: int = Field(0, ge=0)
    excuse_reason: Optional[str] = None
    notes: Optional[str] = None


class BulkAttendance(CamelModel):
    course: str = ref_in("course")
    date: dt.date
    records: List[BulkAttendanceEntry]

    @field_validator("date", mode="before")
    @classmethod
    def calendar_day(cls, v):
        return to_day(v)


class AttendanceOut(CamelModel):
    id: str
    student: str = ref("student")
    course: str = ref("course")
    date: dt.date
    status: AttendanceStatus
    late_minutes: Optional[int] = None
    excuse_reason: Optional[str] = None
    excuse_document_url: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: str
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None
