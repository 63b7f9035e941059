# attendify/services/attendance.py
"""Máquina de estados de presença: NoRecord -> CheckedIn -> CheckedOut.

Cada (evento, aluno) tem no máximo um registro; a unique constraint
uq_attendance_event_student é o ponto de serialização entre requisições
concorrentes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from attendify.core.config import settings
from attendify.core.errors import (
    AccessDeniedError, ConflictError, NotFoundError, StateError, ValidationError,
)
from attendify.core.timeutil import ensure_aware, utcnow
from attendify.crud.attendance import attendance_crud
from attendify.crud.event import event_crud
from attendify.crud.user import user_crud
from attendify.models.attendance import Attendance, AttendanceAction, AttendanceStatus, TimingStatus
from attendify.models.audit import ATTENDANCE_STATUS_UPDATED
from attendify.models.event import Event
from attendify.models.user import STAFF_ROLES, User
from attendify.services.access import ensure_event_access
from attendify.services import audit

logger = logging.getLogger(__name__)


@dataclass
class MarkResult:
    attendance: Attendance
    student: User
    event: Event
    total_attendance_count: int
    event_attendance_count: int


def classify_timing(actual: datetime, expected: datetime, grace: timedelta) -> TimingStatus:
    early_threshold = expected - timedelta(minutes=settings.EARLY_THRESHOLD_MINUTES)
    if actual < early_threshold:
        return TimingStatus.early
    if actual > expected + grace:
        return TimingStatus.late
    return TimingStatus.on_time


def _parse_action(action) -> AttendanceAction:
    try:
        return AttendanceAction(getattr(action, "value", action))
    except ValueError:
        raise ValidationError("action must be 'check_in' or 'check_out'")


def _load_active_event(db: Session, event_id: int) -> Event:
    event = event_crud.get(db, event_id)
    if not event:
        raise NotFoundError("event not found")
    if not event.is_active:
        raise StateError("event is not active")
    return event


def _apply_check_in(att: Attendance, event: Event, actor_role: str, now: datetime) -> None:
    if att.check_in_time is not None:
        raise ConflictError("already checked in")

    start = ensure_aware(event.start_time)
    end = ensure_aware(event.end_time)
    if actor_role in STAFF_ROLES:
        if now > end + timedelta(hours=settings.STAFF_CHECKIN_GRACE_HOURS):
            raise StateError("event has ended more than 24 hours ago. Check-in is no longer allowed")
    else:
        opens_at = start - timedelta(minutes=settings.CHECKIN_OPENS_MINUTES_BEFORE)
        if now < opens_at:
            hours = (opens_at - now).total_seconds() / 3600
            raise StateError(f"event check-in not yet available. Available in {hours:.0f} hours")
        if now > end:
            raise StateError("event has already ended. Check-in is no longer allowed")

    timing = classify_timing(now, start, timedelta(minutes=settings.LATE_GRACE_MINUTES))
    att.check_in_time = now
    att.check_in_status = timing.value
    att.status = AttendanceStatus.late.value if timing is TimingStatus.late else AttendanceStatus.present.value


def _apply_check_out(att: Attendance, event: Event, now: datetime) -> None:
    if att.check_in_time is None:
        raise StateError("must check in first before checking out")
    if att.check_out_time is not None:
        raise ConflictError("already checked out")
    timing = classify_timing(now, ensure_aware(event.end_time), timedelta(0))
    att.check_out_time = now
    att.check_out_status = timing.value


def _apply(att: Attendance, action: AttendanceAction, event: Event, actor_role: str, now: datetime) -> None:
    if action is AttendanceAction.check_in:
        _apply_check_in(att, event, actor_role, now)
    else:
        _apply_check_out(att, event, now)


def _insert(db: Session, att: Attendance, reapply) -> Attendance:
    db.add(att)
    try:
        db.commit()
        return att
    except IntegrityError:
        db.rollback()

    # outra requisição criou o par primeiro: reaplica a ação sobre o registro dela
    existing = attendance_crud.get_pair(db, event_id=att.event_id, student_id=att.student_id)
    if existing is not None:
        reapply(existing)
        db.commit()
        return existing

    # sem linha para o par: sequence do PK dessincronizada
    if not attendance_crud.resync_sequence(db):
        raise ConflictError("failed to mark attendance")
    logger.warning("attendances id sequence resynced; retrying insert for event=%s student=%s", att.event_id, att.student_id)
    db.add(att)
    db.commit()
    return att


def mark_attendance(
    db: Session,
    *,
    event_id: int,
    action,
    actor_id: str,
    actor_role: str,
    student_id: Optional[str] = None,
    method: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    dispatcher=None,
    notifier=None,
) -> MarkResult:
    action = _parse_action(action)
    now = ensure_aware(now) if now else utcnow()

    event = _load_active_event(db, event_id)

    target_id = (student_id or "").strip() or actor_id
    if target_id != actor_id and actor_role not in STAFF_ROLES:
        raise AccessDeniedError("You can only mark your own attendance")

    student = user_crud.get_by_student_id(db, target_id)
    if not student:
        raise NotFoundError("student not found")

    ensure_event_access(event, student)

    att = attendance_crud.get_pair(db, event_id=event.id, student_id=student.student_id)
    is_new = att is None
    if is_new:
        att = Attendance(
            event_id=event.id,
            student_id=student.student_id,
            status=AttendanceStatus.present.value,
            marked_at=now,
            marked_by=actor_id,
            marked_by_role=actor_role,
            method=method or "qr_scan",
            latitude=latitude,
            longitude=longitude,
            notes=notes,
        )

    _apply(att, action, event, actor_role, now)

    if is_new:
        att = _insert(db, att, lambda existing: _apply(existing, action, event, actor_role, now))
    else:
        db.commit()

    if dispatcher is not None and notifier is not None:
        timing = att.check_in_status if action is AttendanceAction.check_in else att.check_out_status
        dispatcher.submit(notifier.notify_attendance, action.value, event.id, student.student_id, now, timing)

    logger.info(
        "attendance %s event=%s student=%s by=%s(%s)",
        action.value, event.id, student.student_id, actor_id, actor_role,
    )
    return MarkResult(
        attendance=att,
        student=student,
        event=event,
        total_attendance_count=attendance_crud.count_for_student(db, student.student_id),
        event_attendance_count=attendance_crud.count_for_event(db, event.id),
    )


def update_attendance_status(
    db: Session,
    *,
    attendance_id: int,
    status: str,
    actor_id: str,
    actor_role: str,
    notes: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Attendance:
    if actor_role not in STAFF_ROLES:
        raise AccessDeniedError("only faculty or admins can update attendance status")
    try:
        new_status = AttendanceStatus(status)
    except ValueError:
        raise ValidationError("status must be one of: present, absent, late, excused")

    att = attendance_crud.get(db, attendance_id)
    if not att:
        raise NotFoundError("attendance record not found")

    previous = att.status
    att.status = new_status.value
    att.marked_by = actor_id
    att.marked_by_role = actor_role
    att.marked_at = utcnow()
    if notes is not None:
        att.notes = notes
    db.commit()
    audit.record(db, ATTENDANCE_STATUS_UPDATED, actor_id=actor_id, target_id=att.student_id,
                 details=f"attendance {att.id}: {previous} -> {new_status.value}", ip_address=ip_address)
    return att


def list_for_event(db: Session, event_id: int) -> List[Attendance]:
    if not event_crud.get(db, event_id):
        raise NotFoundError("event not found")
    return attendance_crud.list_for_event(db, event_id)


def list_for_student(
    db: Session,
    student_id: str,
    *,
    event_id: Optional[int] = None,
    status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Attendance]:
    if status:
        try:
            AttendanceStatus(status)
        except ValueError:
            raise ValidationError("status must be one of: present, absent, late, excused")
    return attendance_crud.list_for_student(db, student_id, event_id=event_id, status=status, start=start, end=end)
