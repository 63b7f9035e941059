# attendify/api/v1/attendance.py
from __future__ import annotations
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from attendify.api.deps import client_ip, get_current_user, get_db, get_dispatcher, get_notifier
from attendify.core.rbac import ROLE_FACULTY, require_min_role
from attendify.core.timeutil import local_tz
from attendify.models.user import Role, User
from attendify.schemas.attendance import (
    AttendanceOut, AttendanceStatsOut, AttendanceStatusIn, MarkAttendanceIn, MarkAttendanceOut, StudentRef,
)
from attendify.services import attendance as attendance_service
from attendify.services.stats import compute_stats

router = APIRouter()

def _day_bounds(start_date: Optional[date], end_date: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    # datas do filtro são dias locais; converte para instantes
    tz = local_tz()
    start = datetime.combine(start_date, time.min, tzinfo=tz) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz) - timedelta(microseconds=1) if end_date else None
    if start:
        start = start.astimezone(timezone.utc)
    if end:
        end = end.astimezone(timezone.utc)
    return start, end

@router.post("/mark", response_model=MarkAttendanceOut)
def mark(
    body: MarkAttendanceIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    dispatcher = Depends(get_dispatcher),
    notifier = Depends(get_notifier),
):
    result = attendance_service.mark_attendance(
        db,
        event_id=body.event_id,
        action=body.action,
        actor_id=user.student_id,
        actor_role=user.role,
        student_id=body.student_id,
        method=body.method,
        latitude=body.latitude,
        longitude=body.longitude,
        notes=body.notes,
        dispatcher=dispatcher,
        notifier=notifier,
    )
    out = AttendanceOut.model_validate(result.attendance)
    return MarkAttendanceOut(
        **out.model_dump(),
        student=StudentRef.model_validate(result.student),
        total_attendance_count=result.total_attendance_count,
        event_attendance_count=result.event_attendance_count,
    )

@router.get("/my-attendance", response_model=List[AttendanceOut])
def my_attendance(
    event_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    start, end = _day_bounds(start_date, end_date)
    return attendance_service.list_for_student(db, user.student_id, event_id=event_id, status=status, start=start, end=end)

@router.get("/stats", response_model=AttendanceStatsOut)
def stats(
    student_id: Optional[str] = None,
    event_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # aluno só enxerga as próprias estatísticas
    if user.role == Role.student.value:
        student_id = user.student_id
    return compute_stats(db, student_id=student_id, event_id=event_id).as_dict()

@router.put("/{attendance_id}/status", response_model=AttendanceOut)
def update_status(
    attendance_id: int,
    body: AttendanceStatusIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_min_role(ROLE_FACULTY)),
):
    return attendance_service.update_attendance_status(
        db,
        attendance_id=attendance_id,
        status=body.status,
        notes=body.notes,
        actor_id=user.student_id,
        actor_role=user.role,
        ip_address=client_ip(request),
    )
