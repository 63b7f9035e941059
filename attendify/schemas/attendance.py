from __future__ import annotations
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


# ---- referências “lite” usadas na resposta ----

class StudentRef(BaseModel):
    student_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    course: Optional[str] = None
    year_level: Optional[str] = None
    section: Optional[str] = None

    model_config = {"from_attributes": True}


# ---- requisições ----

class MarkAttendanceIn(BaseModel):
    event_id: int
    action: str
    student_id: Optional[str] = None
    method: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

class AttendanceStatusIn(BaseModel):
    status: str
    notes: Optional[str] = Field(default=None, max_length=1000)


# ---- respostas ----

class AttendanceOut(BaseModel):
    id: int
    event_id: int
    student_id: str
    status: str
    method: str
    marked_at: Optional[datetime] = None
    marked_by: Optional[str] = None
    marked_by_role: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: Optional[str] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_status: Optional[str] = None
    check_out_status: Optional[str] = None

    model_config = {"from_attributes": True}

class MarkAttendanceOut(AttendanceOut):
    student: StudentRef
    total_attendance_count: int
    event_attendance_count: int

class AttendanceStatsOut(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    excused: int
    rate: float
